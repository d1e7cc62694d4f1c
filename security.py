import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import jwt
from passlib.context import CryptContext

from config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # MongoDB hands back naive datetimes unless the client is tz_aware
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def generate_reset_token() -> Tuple[str, str, datetime]:
    """Return ``(raw_token, stored_hash, expires_at)``; only the hash is persisted."""
    raw = secrets.token_hex(32)
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    return raw, sha256_hex(raw), expires


def generate_validation_number() -> Tuple[str, str, datetime]:
    """Return an 8-digit code, its stored hash and its expiry."""
    code = str(secrets.randbelow(90_000_000) + 10_000_000)
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.VALIDATION_NUMBER_EXPIRE_MINUTES)
    return code, sha256_hex(code), expires
