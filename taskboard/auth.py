# PURPOSE: password hashing (bcrypt) and the bearer-token gate used by every task route.

import logging
from typing import Optional

import bcrypt
from fastapi import Depends, Header, Request

from .api.errors import ForbiddenError, UnauthenticatedError
from .config import settings
from .models import TokenClaims
from .tokens import TokenExpired, TokenInvalid, TokenService, get_token_service

logger = logging.getLogger("taskboard.auth")

BEARER_PREFIX = "Bearer "

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


# --- Password helpers (bcrypt, no passlib) ---

def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Return a salted bcrypt hash for the given plain password."""
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against its bcrypt hash (constant-time compare)."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except (ValueError, TypeError):
        return False


_dummy_hash: Optional[str] = None


def burn_password_check(plain_password: str) -> None:
    """Run one bcrypt comparison against a throwaway hash.

    Used when the email is unknown so the response costs as much as a wrong password.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    verify_password(plain_password, _dummy_hash)


# --- Auth gate ---

def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """Turn `Authorization: Bearer <token>` into verified claims, or reject the request.

    - missing / malformed header -> 401 Unauthenticated
    - expired token              -> 401 Unauthenticated (log in again)
    - anything else wrong        -> 403 Forbidden
    The claims are also attached to ``request.state.identity``.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.info("auth rejected reason=missing_or_malformed path=%s", request.url.path)
        raise UnauthenticatedError()

    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        claims = tokens.verify(token)
    except TokenExpired:
        logger.info("auth rejected reason=expired path=%s", request.url.path)
        raise UnauthenticatedError("Session expired. Please log in again.")
    except TokenInvalid as err:
        logger.warning("auth rejected reason=invalid path=%s detail=%s", request.url.path, err)
        raise ForbiddenError()

    request.state.identity = claims
    return claims
