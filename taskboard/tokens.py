"""Signed, time-limited bearer tokens (JWT via python-jose).

A token carries the identity id (``sub``), the role and an absolute ``exp``.
Nothing is persisted: verification only needs the shared secret and the clock.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from .models import TokenClaims


class TokenError(Exception):
    """Raised when a token cannot be verified."""


class TokenExpired(TokenError):
    """Signature is fine but ``exp`` is in the past."""


class TokenInvalid(TokenError):
    """Bad signature, malformed token, unexpected algorithm or missing claims."""


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = _now_utc,
    ):
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            ttl=timedelta(minutes=settings.JWT_EXPIRE_MIN),
        )

    def issue(self, claims: TokenClaims, ttl: Optional[timedelta] = None) -> str:
        """Sign ``claims`` with an expiry of issuance time + ``ttl`` (default: configured TTL)."""
        issued_at = self._clock()
        payload: Dict[str, Any] = {
            "sub": str(claims.identity_id),
            "role": claims.role,
            "iat": issued_at,
            "exp": issued_at + (ttl if ttl is not None else self.ttl),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Return the embedded claims or raise TokenExpired / TokenInvalid."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as err:
            raise TokenExpired("token has expired") from err
        except JWTError as err:
            raise TokenInvalid(f"invalid token: {err}") from err

        if "exp" not in payload:
            raise TokenInvalid("invalid token: missing exp claim")
        try:
            return TokenClaims(identity_id=int(payload["sub"]), role=payload["role"])
        except (KeyError, TypeError, ValueError) as err:
            raise TokenInvalid("invalid token: malformed claims") from err


def get_token_service(request: Request) -> TokenService:
    """FastAPI dependency: the process-wide TokenService built at startup."""
    return request.app.state.token_service
