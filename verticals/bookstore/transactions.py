"""Transactions router — order placement, history and statistics.

All routes require a bearer token. The ordering user always comes from the
token, never from the request body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import Database, get_database, get_session
from core.security import CurrentUser, get_current_user
from patterns.repository import PageRequest
from verticals.bookstore.models.schemas import OrderCreate, SortOrder, ok
from verticals.bookstore.router import page_request
from verticals.bookstore.services.orders import OrderService
from verticals.bookstore.services.statistics import StatisticsService

router = APIRouter(prefix="/transactions", dependencies=[Depends(get_current_user)])


def get_order_service(database: Database = Depends(get_database)) -> OrderService:
    return OrderService(database)


@router.post("", status_code=201)
async def create_transaction(
    request: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    """Place an order: decrement stock for every item and record it atomically."""
    order = await orders.place_order(user.id, request.items)
    return ok("Transaction created successfully", order)


@router.get("")
async def list_transactions(
    page: PageRequest = Depends(page_request),
    user_id: Optional[str] = None,
    sort_order: SortOrder = SortOrder.DESC,
    orders: OrderService = Depends(get_order_service),
):
    data = await orders.list_orders(page, user_id=user_id, sort_order=sort_order.value)
    return ok("Transactions retrieved successfully", data)


@router.get("/statistics")
async def transaction_statistics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    session: AsyncSession = Depends(get_session),
):
    """Revenue and per-genre sales, optionally limited to a date range."""
    stats = await StatisticsService(session).compute(start_date, end_date)
    return ok("Statistics retrieved successfully", stats)


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    orders: OrderService = Depends(get_order_service),
):
    order = await orders.get_order(transaction_id)
    return ok("Transaction details retrieved successfully", order)
