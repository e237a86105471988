"""Password hashing and bearer tokens for the API gate"""
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from infrastructure.config import settings

BCRYPT_MAX_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__ident="2b")


def _bcrypt_input(password: str) -> str:
    """Passwords over bcrypt's byte limit are reduced to their SHA256 hex digest"""
    raw = password.encode("utf-8")
    return hashlib.sha256(raw).hexdigest() if len(raw) > BCRYPT_MAX_BYTES else password


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """Signed JWT for subject, valid for the configured lifetime by default"""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"sub": subject, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    """Raises jose.JWTError when the token is invalid or expired"""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
