"""User registration, login and profile lookup."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.errors import AuthError, ConflictError, NotFoundError
from core.security import create_access_token, hash_password, verify_password
from verticals.bookstore.models.db_models import User
from verticals.bookstore.models.schemas import LoginRequest, RegisterRequest, TokenResponse
from verticals.bookstore.repository import UserRepository

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.users = UserRepository(session)

    async def register(self, payload: RegisterRequest) -> dict:
        if await self.users.find_by_email(payload.email):
            raise ConflictError("Email already used")
        try:
            user = await self.users.add(
                User(
                    username=payload.username,
                    email=payload.email.lower(),
                    password_hash=hash_password(payload.password),
                )
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Email already used") from None
        logger.info("User %s registered", user.id)
        return {"id": user.id, "email": user.email, "username": user.username}

    async def login(self, payload: LoginRequest) -> dict:
        user = await self.users.find_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise AuthError("Invalid credentials")
        token = create_access_token(self.settings, user.id, user.email)
        return TokenResponse(access_token=token).model_dump()

    async def me(self, user_id: str) -> dict:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_dict()
