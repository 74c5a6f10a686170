"""Third-party sign-in (Google, GitHub) through authlib's Starlette client.

Each provider wraps an authlib client and knows how to turn the provider's
token response into an ``OAuthProfile``. Providers are built once at startup
from settings; only the ones with both a client id and secret are enabled.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from authlib.integrations.starlette_client import OAuth
from fastapi import Request

logger = logging.getLogger("taskboard.oauth")

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"


@dataclass
class OAuthProfile:
    email: str
    username: str


class ProfileError(Exception):
    """Provider answered, but without a usable verified email."""


class OAuthProvider:
    name = ""

    def __init__(self, client):
        self.client = client

    async def redirect(self, request: Request, redirect_uri: str):
        """Response sending the browser to the provider's consent page."""
        return await self.client.authorize_redirect(request, redirect_uri)

    async def fetch_profile(self, request: Request) -> OAuthProfile:
        """Exchange the callback's code for a token, then read the profile."""
        token = await self.client.authorize_access_token(request)
        return await self.profile_from_token(token)

    async def profile_from_token(self, token) -> OAuthProfile:
        raise NotImplementedError


class GoogleProvider(OAuthProvider):
    name = "google"

    async def profile_from_token(self, token) -> OAuthProfile:
        # OpenID Connect: the parsed id_token is usually already in the token response
        info = token.get("userinfo") or await self.client.userinfo(token=token)
        email = info.get("email")
        if not email or info.get("email_verified") is False:
            raise ProfileError("google account has no verified email")
        return OAuthProfile(email=email, username=info.get("name") or email.split("@")[0])


class GitHubProvider(OAuthProvider):
    name = "github"

    async def profile_from_token(self, token) -> OAuthProfile:
        resp = await self.client.get("user", token=token)
        if resp.status_code != 200:
            raise ProfileError(f"github /user answered {resp.status_code}")
        user = resp.json()
        email = user.get("email")
        if not email:
            # Private email: ask for the address list (needs the user:email scope)
            resp = await self.client.get("user/emails", token=token)
            if resp.status_code != 200:
                raise ProfileError(f"github /user/emails answered {resp.status_code}")
            email = next(
                (e["email"] for e in resp.json() if e.get("primary") and e.get("verified")),
                None,
            )
        if not email:
            raise ProfileError("github account has no verified primary email")
        return OAuthProfile(email=email, username=user.get("login") or email.split("@")[0])


def build_providers(settings) -> Dict[str, OAuthProvider]:
    """Register the configured providers with authlib; unconfigured ones stay disabled."""
    oauth = OAuth()
    providers: Dict[str, OAuthProvider] = {}
    enabled = settings.enabled_oauth_providers()
    if "google" in enabled:
        oauth.register(
            name="google",
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            server_metadata_url=GOOGLE_METADATA_URL,
            client_kwargs={"scope": "openid email profile"},
        )
        providers["google"] = GoogleProvider(oauth.create_client("google"))
    if "github" in enabled:
        oauth.register(
            name="github",
            client_id=settings.GITHUB_CLIENT_ID,
            client_secret=settings.GITHUB_CLIENT_SECRET,
            access_token_url="https://github.com/login/oauth/access_token",
            authorize_url="https://github.com/login/oauth/authorize",
            api_base_url="https://api.github.com/",
            client_kwargs={"scope": "user:email"},
        )
        providers["github"] = GitHubProvider(oauth.create_client("github"))
    logger.info("oauth providers enabled=%s", ",".join(providers) or "-")
    return providers


def get_oauth_providers(request: Request) -> Dict[str, OAuthProvider]:
    """FastAPI dependency: providers built at startup."""
    return request.app.state.oauth_providers
