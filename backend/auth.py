"""
auth.py — Bearer-token identity for the API
Tokens are JWTs carrying the numeric user id. Routes resolve their caller
through get_current_user and hand the id to the services, which do every
ownership check themselves.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from config import JWT_ALGORITHM, JWT_EXPIRY_HOURS, JWT_SECRET
from errors import AuthenticationError


def create_access_token(user_id: int, username: Optional[str] = None, expires_in: Optional[timedelta] = None) -> str:
    """Signed token for `user_id`, valid for JWT_EXPIRY_HOURS unless `expires_in` says otherwise."""
    now = datetime.now(timezone.utc)
    claims = {
        "user_id": user_id,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else timedelta(hours=JWT_EXPIRY_HOURS)),
        "jti": str(uuid.uuid4()),
    }
    if username:
        claims["username"] = username
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_user_id(token: str) -> int:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Invalid token")

    user_id = payload.get("user_id")
    # bool is an int subclass
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id < 1:
        raise AuthenticationError("Token carries no valid user id")
    return user_id


async def get_current_user(request: Request) -> int:
    """FastAPI dependency: the caller's user id from `Authorization: Bearer <token>`."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Missing or invalid Authorization header")
    return decode_user_id(token)
