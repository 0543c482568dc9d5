"""
Password hashing and bearer tokens.

Passwords are hashed with argon2id (salted, memory-hard). Tokens are HS256
JWTs carrying ``user_id`` and ``username``. Verification fails closed: a bad
signature, a malformed payload and an expired token all raise the same
InvalidTokenError.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from pydantic import ValidationError as SchemaError

from taskapi.core.config import Settings
from taskapi.exceptions import InvalidTokenError
from taskapi.models import TokenClaims

logger = logging.getLogger(__name__)

_hasher = PasswordHasher()

# Verified against when the username is unknown.
DUMMY_PASSWORD_HASH = _hasher.hash("no-such-user")

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def issue_token(user_id: int, username: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> TokenClaims:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
        return TokenClaims.model_validate(payload)
    except (jwt.PyJWTError, SchemaError) as e:
        logger.debug(f"Token rejected: {e}")
        raise InvalidTokenError(INVALID_TOKEN_MESSAGE) from e
