"""Bookstore vertical configuration.

Builds the BookstoreConfig from the patterns module once at import, with
``BOOKSTORE_*`` environment overrides applied.
"""

from patterns.domain_config import BookstoreConfig

config = BookstoreConfig.from_env()
