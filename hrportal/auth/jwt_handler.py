from datetime import datetime, timedelta, timezone

import jwt

from hrportal.core import config

SESSION_TOKEN_TYPE = "session"
SIGNED_URL_TOKEN_TYPE = "object"


def create_access_token(subject: str, email: str, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "email": email,
        "typ": SESSION_TOKEN_TYPE,
        "exp": now + timedelta(minutes=expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def create_object_token(path: str, expires_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "path": path,
        "typ": SIGNED_URL_TOKEN_TYPE,
        "exp": now + timedelta(seconds=expires_seconds),
        "iat": now,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str) -> dict:
    payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    if payload.get("typ") != expected_type:
        raise jwt.InvalidTokenError("Unexpected token type")
    return payload
