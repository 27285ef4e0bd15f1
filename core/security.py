"""Password hashing and bearer-token authentication.

Tokens are HS256 JWTs whose ``sub`` claim carries the user id. Handlers only
ever see the ``CurrentUser`` resolved here; the user id is never read from a
request body.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from core.config import Settings
from core.errors import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

MISSING_TOKEN = "Authentication required. Please login first."
INVALID_TOKEN = "Invalid token"


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(settings: Settings, user_id: str, email: str | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError:
        raise AuthError(INVALID_TOKEN) from None

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError(INVALID_TOKEN)
    return CurrentUser(id=str(user_id), email=payload.get("email"))


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """FastAPI dependency: resolve the bearer token or raise AuthError."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError(MISSING_TOKEN)
    return decode_access_token(settings, credentials.credentials)
