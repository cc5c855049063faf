"""Accounts and access tokens for the booking API.

Passwords are bcrypt hashes through passlib. Access tokens are HS256 JWTs
carrying the user id (``sub``) and role; the same token is sent as a bearer
header or in the ``access_token`` cookie.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__default_ident="2b")

ALGORITHM = "HS256"
ACCESS_TOKEN_COOKIE = "access_token"
BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> str:
    # bcrypt only reads the first 72 bytes; cut on a character boundary
    encoded = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return encoded.decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows, for accounts created by staff."""
    return hash_password(secrets.token_urlsafe(32))


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token for ``user``; it expires after ACCESS_TOKEN_EXPIRE_MINUTES by default."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user.id),
        "role": user.role.value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the token claims, or None when the signature or expiry is bad."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning("Rejected access token: %s", e)
        return None


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Check a login. Inactive accounts are returned too; the caller answers 403."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user
