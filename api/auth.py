"""Account routes: register, login, profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.database import get_session
from core.security import CurrentUser, get_current_user, get_settings
from verticals.bookstore.models.schemas import LoginRequest, RegisterRequest, ok
from verticals.bookstore.services.accounts import AccountService

router = APIRouter(prefix="/auth")


def get_account_service(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AccountService:
    return AccountService(session, settings)


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
):
    return ok("Registered", await accounts.register(request))


@router.post("/login")
async def login(
    request: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Exchange email and password for a bearer token."""
    return ok("Logged in", await accounts.login(request))


@router.get("/me")
async def me(
    user: CurrentUser = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    return ok("Profile", await accounts.me(user.id))
