"""
Utility functions for the application.

- Password hashing and verification using bcrypt
- JWT token creation and decoding
- Cryptographically random numeric OTP codes
- Opaque pagination cursors
- Timezone helpers
"""

import base64
import binascii
from datetime import datetime, timedelta, timezone
import json
import secrets
from typing import Any
import uuid

import aiofiles
import bcrypt
from fastapi import FastAPI
import jwt

from app.core.config import settings, utils_logger

# bcrypt only looks at the first 72 bytes of the input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        utils_logger.debug(
            f"Password exceeds {BCRYPT_MAX_BYTES} bytes ({len(password_bytes)} bytes), truncating"
        )
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


def hash_password(password: str | None) -> str:
    """
    Hash a password using bcrypt with a random salt.

    Args:
        password: The plain text password to hash. Cannot be None.

    Returns:
        str: The bcrypt hash, e.g. ``$2b$12$<salt><hash>`` (60 characters).

    Raises:
        ValueError: If password is None.
    """
    if password is None:
        utils_logger.error("Attempted to hash None password")
        raise ValueError("Password cannot be None")

    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str | None, hashed_password: str | None) -> bool:
    """
    Verify a password against a bcrypt hash.

    Never raises: malformed hashes and missing values simply do not match.

    Args:
        password: The plain text password to verify.
        hashed_password: The stored bcrypt hash.

    Returns:
        bool: True if the password matches the hash.
    """
    if password is None or hashed_password is None:
        utils_logger.warning("Password verification attempted with a missing value")
        return False

    try:
        return bcrypt.checkpw(
            _password_bytes(password), hashed_password.encode("utf-8")
        )
    except (ValueError, AttributeError) as e:
        utils_logger.warning(
            f"Password verification failed due to invalid hash format: {type(e).__name__}"
        )
        return False


def create_jwt_token(
    data: dict[str, Any] | None, expires_delta: timedelta | None = None
) -> str:
    """
    Create a signed JWT carrying ``data``.

    ``exp``, ``iat`` and a random ``jti`` are added to the claims unless the
    caller already supplied a ``jti``.

    Args:
        data: Claims to encode. Cannot be None.
        expires_delta: Token lifetime, defaults to 15 minutes.

    Returns:
        str: Encoded token in the form ``header.payload.signature``.

    Raises:
        ValueError: If data is None.
    """
    if data is None:
        utils_logger.error("Attempted to create JWT token with None data")
        raise ValueError("Data cannot be None")

    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=15))
    to_encode["exp"] = expire
    to_encode["iat"] = now
    to_encode.setdefault("jti", str(uuid.uuid4()))

    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    utils_logger.info(f"JWT token created with expiration: {expire.isoformat()}")
    return encoded_jwt


def decode_jwt_token(token: str | None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT.

    Args:
        token: The encoded token. Can be None or empty.

    Returns:
        dict[str, Any] | None: The claims, or None when the token is missing,
        expired, tampered with or otherwise invalid.
    """
    if not token:
        return None

    try:
        return jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        utils_logger.warning("JWT token decoding failed: token has expired")
        return None
    except jwt.InvalidTokenError as e:
        utils_logger.warning(
            f"JWT token decoding failed: invalid token - {type(e).__name__}"
        )
        return None


def generate_otp_code(length: int = 6) -> str:
    """
    Generate a numeric OTP code of exactly ``length`` digits.

    The first digit is never zero, so a 6 digit code lies in 100000-999999.
    """
    if length < 1:
        raise ValueError("OTP length must be positive")
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalise aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_cursor(created_at: datetime, record_id: uuid.UUID) -> str:
    """Encode a keyset position as an opaque url-safe string."""
    raw = json.dumps([ensure_utc(created_at).isoformat(), str(record_id)])
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    """
    Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValueError: If the cursor is malformed.
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii"))
        created_at, record_id = json.loads(raw)
        return ensure_utc(datetime.fromisoformat(created_at)), uuid.UUID(record_id)
    except (binascii.Error, UnicodeError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid cursor: {type(e).__name__}") from e


def generate_openapi_json(app: FastAPI) -> str:
    """
    Generate OpenAPI JSON schema for the given FastAPI application.

    Args:
        app: The FastAPI application instance.

    Returns:
        A pretty-printed JSON string of the OpenAPI schema.
    """
    openapi_json = json.dumps(app.openapi(), indent=4)
    utils_logger.info("OpenAPI JSON schema generated successfully")
    return openapi_json


async def write_to_file_async(file_path: str, data: str) -> None:
    """
    Asynchronously write data to a file.

    Args:
        file_path: Path to the file where data should be written.
        data: The string data to write to the file.
    """
    try:
        async with aiofiles.open(file_path, mode="w", encoding="utf-8") as file:
            await file.write(data)
        utils_logger.info(f"Data written to file {file_path} successfully.")
    except OSError as e:
        utils_logger.error(
            f"Failed to write data to file {file_path}: {type(e).__name__} - {str(e)}"
        )
        raise


__all__ = [
    "create_jwt_token",
    "decode_cursor",
    "decode_jwt_token",
    "encode_cursor",
    "ensure_utc",
    "generate_openapi_json",
    "generate_otp_code",
    "hash_password",
    "verify_password",
    "write_to_file_async",
]
