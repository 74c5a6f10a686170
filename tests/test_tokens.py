# tests/test_tokens.py
# PURPOSE: issue/verify behaviour of the token service, independent of HTTP.

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from taskboard.models import TokenClaims
from taskboard.tokens import TokenExpired, TokenInvalid, TokenService

SECRET = "unit-test-secret-abcdef"


def _service(**kwargs) -> TokenService:
    return TokenService(SECRET, **kwargs)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def test_issue_then_verify_returns_claims():
    svc = _service()
    token = svc.issue(TokenClaims(identity_id=7, role="admin"))
    claims = svc.verify(token)
    assert claims.identity_id == 7
    assert claims.role == "admin"


def test_expiry_is_issuance_time_plus_ttl():
    issued = datetime(2030, 1, 1, tzinfo=timezone.utc)
    svc = _service(ttl=timedelta(minutes=30), clock=lambda: issued)
    token = svc.issue(TokenClaims(identity_id=1, role="user"))
    payload = jwt.get_unverified_claims(token)
    assert payload["exp"] == int((issued + timedelta(minutes=30)).timestamp())
    assert payload["sub"] == "1"


def test_token_issued_in_the_past_is_expired():
    two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
    svc = _service(ttl=timedelta(hours=1), clock=lambda: two_hours_ago)
    token = svc.issue(TokenClaims(identity_id=1, role="user"))
    with pytest.raises(TokenExpired):
        _service().verify(token)


def test_explicit_ttl_overrides_default():
    svc = _service(ttl=timedelta(hours=1))
    token = svc.issue(TokenClaims(identity_id=1, role="user"), ttl=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        svc.verify(token)


def test_tampered_signature_is_invalid():
    svc = _service()
    token = svc.issue(TokenClaims(identity_id=1, role="user"))
    header, payload, sig = token.split(".")
    first = "B" if sig[0] != "B" else "C"
    with pytest.raises(TokenInvalid):
        svc.verify(".".join([header, payload, first + sig[1:]]))


def test_tampered_payload_is_invalid():
    svc = _service()
    token = svc.issue(TokenClaims(identity_id=1, role="user"))
    header, _, sig = token.split(".")
    forged = _b64({"sub": "1", "role": "admin", "exp": 4102444800})
    with pytest.raises(TokenInvalid):
        svc.verify(".".join([header, forged, sig]))


def test_other_secret_is_invalid():
    token = TokenService("some-other-secret").issue(TokenClaims(identity_id=1, role="user"))
    with pytest.raises(TokenInvalid):
        _service().verify(token)


def test_unexpected_algorithm_is_invalid():
    token = _service(algorithm="HS512").issue(TokenClaims(identity_id=1, role="user"))
    with pytest.raises(TokenInvalid):
        _service(algorithm="HS256").verify(token)


def test_alg_none_is_invalid():
    unsigned = ".".join(
        [_b64({"alg": "none", "typ": "JWT"}), _b64({"sub": "1", "role": "user", "exp": 4102444800}), ""]
    )
    with pytest.raises(TokenInvalid):
        _service().verify(unsigned)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "not a token at all"])
def test_malformed_token_is_invalid(garbage):
    with pytest.raises(TokenInvalid):
        _service().verify(garbage)


@pytest.mark.parametrize(
    "payload",
    [
        {"role": "user", "exp": 4102444800},  # no sub
        {"sub": "1", "exp": 4102444800},  # no role
        {"sub": "abc", "role": "user", "exp": 4102444800},  # non-numeric id
        {"sub": "1", "role": "root", "exp": 4102444800},  # unknown role
        {"sub": "1", "role": "user"},  # no expiry
    ],
)
def test_missing_or_bad_claims_are_invalid(payload):
    token = jwt.encode(payload, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        _service().verify(token)


def test_empty_secret_is_rejected():
    with pytest.raises(ValueError):
        TokenService("")
