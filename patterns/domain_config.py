"""Dataclass-based domain configuration pattern.

The bookstore defines its thresholds and limits as frozen dataclasses.
This gives you:
- Type safety (IDE autocompletion, mypy checking)
- Default values (sensible out-of-the-box)
- Immutability (frozen=True prevents accidental mutation)
- Easy overrides (from env vars)
"""

import os
from dataclasses import dataclass, field, replace


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaginationConfig:
    """Listing defaults shared by books, genres and orders."""

    default_page: int = 1
    default_limit: int = 10
    max_limit: int = 100


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookstoreConfig:
    """Complete configuration for the bookstore vertical.

    Usage::

        config = BookstoreConfig.default()
        limit = min(requested, config.pagination.max_limit)
    """

    pagination: PaginationConfig = field(default_factory=PaginationConfig)

    @classmethod
    def default(cls) -> "BookstoreConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "BOOKSTORE_") -> "BookstoreConfig":
        """Create config from environment variables.

        Example: BOOKSTORE_MAX_PAGE_LIMIT=50
        """
        config = cls()

        pagination = config.pagination
        default_limit = os.getenv(f"{prefix}DEFAULT_PAGE_LIMIT")
        if default_limit:
            pagination = replace(pagination, default_limit=int(default_limit))
        max_limit = os.getenv(f"{prefix}MAX_PAGE_LIMIT")
        if max_limit:
            pagination = replace(pagination, max_limit=int(max_limit))

        return replace(config, pagination=pagination)
