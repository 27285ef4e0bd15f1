"""Revenue and sales rollups over order history.

Revenue is always ``quantity * current book price``: order items carry no
price snapshot, so changing a price changes past statistics.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ValidationError
from verticals.bookstore.models.schemas import GenreSales, Statistics
from verticals.bookstore.repository import OrderRepository

logger = logging.getLogger(__name__)

NO_DATA = GenreSales(genreName="No data", totalSold=0, totalRevenue=0)


@dataclass
class _GenreTotals:
    name: str
    sold: int = 0
    revenue: float = 0.0

    def as_sales(self) -> GenreSales:
        return GenreSales(genreName=self.name, totalSold=self.sold, totalRevenue=self.revenue)


def parse_date_bound(value: str | None, field_name: str) -> datetime | None:
    """Parse an ISO-8601 date or datetime query value into an aware UTC datetime.

    A bare date is midnight UTC of that day, for either bound.
    """
    if value is None or value == "":
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid {field_name} format") from None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class StatisticsService:
    def __init__(self, session: AsyncSession):
        self.orders = OrderRepository(session)

    async def compute(self, start_date: str | None = None, end_date: str | None = None) -> dict:
        start = parse_date_bound(start_date, "startDate")
        end = parse_date_bound(end_date, "endDate")

        total_transactions = await self.orders.count_between(start, end)
        lines = await self.orders.sales_lines(start, end)

        total_revenue = 0.0
        # dicts keep insertion order: first-encountered genre wins ties
        by_genre: dict[str, _GenreTotals] = {}
        for quantity, price, genre_id, genre_name in lines:
            line_revenue = quantity * price
            total_revenue += line_revenue
            totals = by_genre.setdefault(genre_id, _GenreTotals(name=genre_name))
            totals.sold += quantity
            totals.revenue += line_revenue

        average = round_half_up(total_revenue / total_transactions) if total_transactions else 0

        most = least = None
        for totals in by_genre.values():
            if most is None or totals.sold > most.sold:
                most = totals
            if least is None or totals.sold < least.sold:
                least = totals

        stats = Statistics(
            totalTransactions=total_transactions,
            totalRevenue=total_revenue,
            averageTransactionAmount=average,
            genreWithMostSales=most.as_sales() if most else NO_DATA,
            genreWithLeastSales=least.as_sales() if least else NO_DATA,
        )
        logger.info(
            "Statistics computed: %d transaction(s), revenue %.2f, range %s..%s",
            total_transactions, total_revenue, start, end,
        )
        return stats.model_dump()
