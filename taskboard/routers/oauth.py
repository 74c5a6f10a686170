# PURPOSE: /auth/{provider} and /auth/{provider}/callback (Google, GitHub).
# The callback finds or creates the identity by profile email and answers
# with the same {token, user} body as /api/users/login.

import logging
import secrets

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..api.errors import InvalidCredentialsError, ProviderNotEnabledError
from ..auth import hash_password
from ..config import settings
from ..models import AuthResponse, normalize_email
from ..oauth import OAuthProfile, OAuthProvider, ProfileError, get_oauth_providers
from ..store_db import create_user, get_db, get_user_by_email
from ..tokens import TokenService, get_token_service
from .users import auth_response

logger = logging.getLogger("taskboard.oauth")

router = APIRouter(prefix="/auth", tags=["auth"])


def _provider(providers: dict, name: str) -> OAuthProvider:
    provider = providers.get(name)
    if provider is None:
        raise ProviderNotEnabledError()
    return provider


def _callback_url(request: Request, name: str) -> str:
    if settings.OAUTH_REDIRECT_BASE_URL:
        return settings.OAUTH_REDIRECT_BASE_URL.rstrip("/") + f"/auth/{name}/callback"
    return str(request.url_for("oauth_callback", provider=name))


def find_or_create_user(db: Session, profile: OAuthProfile):
    """Identity for a provider profile: matched by email, created on first sign-in."""
    email = normalize_email(profile.email)
    if email is None:
        raise ProfileError(f"provider email is not a valid address: {profile.email!r}")
    user = get_user_by_email(db, email)
    if user is not None:
        return user
    try:
        # No usable password: this identity signs in through the provider only
        user = create_user(
            db,
            username=profile.username,
            email=email,
            password_hash=hash_password(secrets.token_urlsafe(32)),
            role="user",
        )
    except IntegrityError:
        # Concurrent first sign-in created it
        return get_user_by_email(db, email)
    logger.info("user created via oauth id=%s", user.id)
    return user


@router.get("/{provider}")
async def oauth_login(
    provider: str,
    request: Request,
    providers: dict = Depends(get_oauth_providers),
):
    client = _provider(providers, provider)
    return await client.redirect(request, _callback_url(request, provider))


@router.get("/{provider}/callback", response_model=AuthResponse, name="oauth_callback")
async def oauth_callback(
    provider: str,
    request: Request,
    providers: dict = Depends(get_oauth_providers),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    client = _provider(providers, provider)
    try:
        profile = await client.fetch_profile(request)
        user = await run_in_threadpool(find_or_create_user, db, profile)
    except (OAuthError, ProfileError) as err:
        logger.info("oauth sign-in failed provider=%s detail=%s", provider, err)
        raise InvalidCredentialsError("Third-party sign-in failed.") from err
    return auth_response(user, tokens)
