"""OAuth2 authorization-code exchange against Google and GitHub."""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from materix.config import settings
from materix.errors import BadRequest, OAuthProviderError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"

REQUEST_TIMEOUT_SECONDS = 10.0


@dataclass
class OAuthProfile:
    provider: str
    email: str
    name: str
    avatar_url: str = ""


@dataclass(frozen=True)
class ProviderConfig:
    token_url: str
    userinfo_url: str
    client_id: str
    client_secret: str


def provider_config(provider: str) -> ProviderConfig:
    if provider == "google":
        return ProviderConfig(GOOGLE_TOKEN_URL, GOOGLE_USERINFO_URL, settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET)
    if provider == "github":
        return ProviderConfig(GITHUB_TOKEN_URL, GITHUB_USER_URL, settings.GITHUB_CLIENT_ID, settings.GITHUB_CLIENT_SECRET)
    raise BadRequest(f"unsupported oauth provider: {provider}")


def _json(response: httpx.Response, expected: type):
    """Decode a provider response body, which must be JSON of type ``expected``."""
    try:
        data = response.json()
    except ValueError as exc:
        logger.error("OAuth provider returned a non-JSON body from %s", response.request.url)
        raise OAuthProviderError() from exc
    if not isinstance(data, expected):
        logger.error("OAuth provider returned an unexpected %s from %s", type(data).__name__, response.request.url)
        raise OAuthProviderError()
    return data


class OAuthClient:
    """Thin httpx wrapper; pass ``transport`` to stub the providers in tests."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None, timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.Client:
        return httpx.Client(
            transport=self.transport,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )

    def authenticate(self, provider: str, code: str) -> OAuthProfile:
        """Exchange ``code`` for a token and return the provider's profile."""
        config = provider_config(provider)
        try:
            with self._client() as client:
                access_token = self._exchange_code(client, config, code)
                return self._fetch_profile(client, provider, config, access_token)
        except httpx.HTTPError as exc:
            logger.error("OAuth request to %s failed: %s", provider, exc)
            raise OAuthProviderError() from exc

    def _exchange_code(self, client: httpx.Client, config: ProviderConfig, code: str) -> str:
        response = client.post(
            config.token_url,
            data={
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": settings.OAUTH_REDIRECT_URI,
            },
        )
        if response.status_code != 200:
            logger.error("OAuth token exchange failed with status %s", response.status_code)
            raise OAuthProviderError()
        access_token = _json(response, dict).get("access_token")
        if not access_token:
            logger.error("OAuth token response carried no access_token")
            raise OAuthProviderError()
        return access_token

    def _fetch_profile(self, client: httpx.Client, provider: str, config: ProviderConfig, access_token: str) -> OAuthProfile:
        headers = {"Authorization": f"Bearer {access_token}"}
        response = client.get(config.userinfo_url, headers=headers)
        if response.status_code != 200:
            logger.error("OAuth profile fetch from %s failed with status %s", provider, response.status_code)
            raise OAuthProviderError()
        data = _json(response, dict)

        if provider == "google":
            email = data.get("email")
            name = data.get("name") or ""
            avatar_url = data.get("picture") or ""
        else:
            email = data.get("email") or self._github_primary_email(client, headers)
            name = data.get("name") or data.get("login") or ""
            avatar_url = data.get("avatar_url") or ""

        if not email:
            logger.error("OAuth profile from %s has no usable email", provider)
            raise OAuthProviderError()
        return OAuthProfile(provider=provider, email=email, name=name or email, avatar_url=avatar_url)

    def _github_primary_email(self, client: httpx.Client, headers: dict) -> Optional[str]:
        # Users who keep their email private only expose it here.
        response = client.get(GITHUB_EMAILS_URL, headers=headers)
        if response.status_code != 200:
            return None
        for entry in _json(response, list):
            if isinstance(entry, dict) and entry.get("primary") and entry.get("verified"):
                return entry.get("email")
        return None


def get_oauth_client() -> OAuthClient:
    return OAuthClient()
