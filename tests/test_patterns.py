"""Test rules engine, domain config, sort allow-lists and settings."""
import pytest

from core.config import Settings
from core.errors import InsufficientStock, ValidationError
from patterns.domain_config import BookstoreConfig
from patterns.repository import Page, PageRequest, resolve_sort
from patterns.rules_engine import (
    check_integer,
    check_non_negative,
    check_publication_year,
    check_stock_availability,
    evaluate_rules,
)
from verticals.bookstore.repository import BOOK_SORT_COLUMNS


def test_stock_rule_passes():
    result = check_stock_availability(5, 3)
    assert result.passed
    assert result.details == {"available": 5, "requested": 3}


def test_stock_rule_exact_quantity():
    assert check_stock_availability(3, 3).passed


def test_stock_rule_fails():
    result = check_stock_availability(2, 3)
    assert not result.passed
    assert "2 available" in result.message


def test_publication_year_rule():
    assert check_publication_year(2024, 2024).passed
    failed = check_publication_year(2025, 2024)
    assert not failed.passed
    assert failed.message == "Publication year cannot be greater than 2024"


def test_non_negative_rule():
    assert check_non_negative(0, "price").passed
    assert check_non_negative(-0.01, "price").message == "Price cannot be negative"


def test_evaluate_rules_collects_failures():
    outcome = evaluate_rules(
        check_non_negative(1, "price"),
        check_non_negative(-1, "stock_quantity"),
        check_publication_year(3000, 2024),
    )
    assert not outcome.all_passed
    assert len(outcome.failed) == 2
    assert outcome.first_failure.rule_name == "stock_quantity_non_negative"


def test_evaluate_rules_empty():
    outcome = evaluate_rules()
    assert outcome.all_passed
    assert outcome.first_failure is None


def test_config_defaults():
    config = BookstoreConfig.default()
    assert config.pagination.default_page == 1
    assert config.pagination.default_limit == 10
    assert config.pagination.max_limit == 100


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("BOOKSTORE_DEFAULT_PAGE_LIMIT", "25")
    monkeypatch.setenv("BOOKSTORE_MAX_PAGE_LIMIT", "50")
    config = BookstoreConfig.from_env()
    assert config.pagination.default_limit == 25
    assert config.pagination.max_limit == 50


def test_config_is_frozen():
    config = BookstoreConfig.default()
    with pytest.raises(AttributeError):
        config.pagination = None


def test_resolve_sort_known_field():
    clause = resolve_sort(BOOK_SORT_COLUMNS, "price", "asc")
    assert "price" in str(clause)
    assert "ASC" in str(clause)


def test_resolve_sort_rejects_unknown_field():
    with pytest.raises(ValidationError, match="Invalid sort field 'password_hash'"):
        resolve_sort(BOOK_SORT_COLUMNS, "password_hash", "asc")


def test_resolve_sort_rejects_unknown_order():
    with pytest.raises(ValidationError):
        resolve_sort(BOOK_SORT_COLUMNS, "price", "sideways")


def test_page_math():
    assert PageRequest(page=3, limit=10).offset == 20
    page = Page(items=[], page=5, limit=10, total=21)
    assert page.total_pages == 3
    assert page.pagination() == {"page": 5, "limit": 10, "total": 21, "total_pages": 3}


def test_insufficient_stock_message():
    error = InsufficientStock("Dune", 2, 3)
    assert error.status_code == 400
    assert error.message == 'Insufficient stock for "Dune". Available: 2, Requested: 3'
    assert error.details() == {"title": "Dune", "available": 2, "requested": 3}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./local.db")
    monkeypatch.setenv("DB_ECHO", "yes")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.is_sqlite
    assert settings.echo_sql is True
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"


def test_integer_rule():
    assert check_integer(3, "stock_quantity").passed
    assert check_integer(3.0, "stock_quantity").passed
    failed = check_integer(2.5, "stock_quantity")
    assert not failed.passed
    assert failed.message == "Stock quantity must be an integer"
    assert not check_integer(True, "stock_quantity").passed
