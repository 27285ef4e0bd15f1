"""Pure-function rules engine pattern.

Rules are stateless functions: (entity, context) -> RuleResult.
No database, no side effects. This makes them:
- Trivially testable (pure input/output)
- Composable (chain multiple rules)
- Auditable (deterministic, explainable)

Services evaluate these against rows they have already loaded and turn
failed results into the matching application error.
"""

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    rule_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleSetResult:
    """Aggregate outcome of multiple rules."""

    all_passed: bool
    results: list[RuleResult]
    failed: list[RuleResult] = field(default_factory=list)

    def __post_init__(self):
        self.failed = [r for r in self.results if not r.passed]
        self.all_passed = len(self.failed) == 0

    @property
    def first_failure(self) -> RuleResult | None:
        return self.failed[0] if self.failed else None


# ---------------------------------------------------------------------------
# Bookstore rules
# ---------------------------------------------------------------------------

def check_stock_availability(available: int, quantity: int = 1) -> RuleResult:
    """Check if a book has enough stock for the requested quantity."""
    passed = available >= quantity

    return RuleResult(
        passed=passed,
        rule_name="stock_availability",
        message=(
            f"In stock: {available} available"
            if passed
            else f"Insufficient stock: {available} available, {quantity} requested"
        ),
        details={"available": available, "requested": quantity},
    )


def check_publication_year(publication_year: int, current_year: int) -> RuleResult:
    """A book cannot be published after the current year."""
    passed = publication_year <= current_year

    return RuleResult(
        passed=passed,
        rule_name="publication_year",
        message=(
            "Publication year accepted"
            if passed
            else f"Publication year cannot be greater than {current_year}"
        ),
        details={"publication_year": publication_year, "current_year": current_year},
    )


def check_integer(value: float, field_name: str) -> RuleResult:
    """Whole numbers only; 3.0 counts, 2.5 does not."""
    passed = not isinstance(value, bool) and float(value).is_integer()
    label = field_name.replace("_", " ").capitalize()
    return RuleResult(
        passed=passed,
        rule_name=f"{field_name}_integer",
        message=f"{label} accepted" if passed else f"{label} must be an integer",
        details={field_name: value},
    )


def check_non_negative(value: float, field_name: str) -> RuleResult:
    passed = value >= 0
    label = field_name.replace("_", " ").capitalize()
    return RuleResult(
        passed=passed,
        rule_name=f"{field_name}_non_negative",
        message=f"{label} accepted" if passed else f"{label} cannot be negative",
        details={field_name: value},
    )


# ---------------------------------------------------------------------------
# Rule composition
# ---------------------------------------------------------------------------

def evaluate_rules(*rules: RuleResult) -> RuleSetResult:
    """Compose multiple rule results into a single aggregate.

    Example::

        result = evaluate_rules(
            check_publication_year(data["publication_year"], 2024),
            check_non_negative(data["price"], "price"),
        )
        if not result.all_passed:
            raise ValidationError(result.first_failure.message, status_code=422)
    """
    return RuleSetResult(
        all_passed=all(r.passed for r in rules),
        results=list(rules),
    )
