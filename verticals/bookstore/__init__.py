"""Bookstore vertical.

Everything specific to the bookstore domain:
- SQLAlchemy models with soft-delete status tags
- Async repositories for catalog, users and orders
- Services for catalog writes, order placement and statistics
- FastAPI routers for books, genres and transactions
- Dataclass configuration
"""
