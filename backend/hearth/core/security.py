"""
Bearer token issue and verification
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from hearth.core.config import Settings, settings

logger = logging.getLogger(__name__)


class InvalidToken(Exception):
    """Bearer token missing, expired, or malformed"""
    pass


def create_access_token(
    user_id: int,
    config: Settings = settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Signed access token whose subject is the user id
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.JWT_EXPIRE_MINUTES))
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str, config: Settings = settings) -> int:
    """
    Verify a token and return the user id it was issued to

    Raises:
        InvalidToken: signature, expiry or subject is bad
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise InvalidToken("Invalid token")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidToken("Invalid token payload")
