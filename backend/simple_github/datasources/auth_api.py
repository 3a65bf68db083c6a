import httpx
from loguru import logger
from pydantic import ValidationError

from ..config import Settings
from ..errors import AuthError, NetworkError
from ..schemas import GithubAccessToken
from .base import AuthDataSource
from .http import USER_AGENT, client_kwargs

AUTHORIZE_PATH = "/login/oauth/authorize"
ACCESS_TOKEN_PATH = "/login/oauth/access_token"


class AuthApi(AuthDataSource):
    """OAuth endpoints on github.com. Requests here never carry a token."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = str(settings.github_oauth_base_url).rstrip("/")
        self.headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        self.client = httpx.AsyncClient(
            **client_kwargs(self.base_url, settings.github_proxy, transport)
        )

    def authorization_url(self, client_id: str) -> str:
        url = httpx.URL(self.base_url + AUTHORIZE_PATH, params={"client_id": client_id})
        return str(url)

    async def exchange_code(self, client_id: str, client_secret: str, code: str) -> str:
        try:
            resp = await self.client.post(
                ACCESS_TOKEN_PATH,
                data={"client_id": client_id, "client_secret": client_secret, "code": code},
                headers=self.headers,
            )
        except httpx.RequestError as exc:
            raise NetworkError(f"GitHub request error: {type(exc).__name__}") from exc

        if resp.is_error:
            raise AuthError(f"Token exchange rejected: {resp.status_code} {resp.reason_phrase}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise AuthError("Malformed token response") from exc
        if not isinstance(payload, dict):
            raise AuthError("Malformed token response")

        # GitHub reports a bad or expired code with 200 and an error body
        if payload.get("error"):
            logger.warning(f"[auth] token exchange failed: {payload['error']}")
            raise AuthError(payload.get("error_description") or payload["error"])

        try:
            token = GithubAccessToken.model_validate(payload)
        except ValidationError as exc:
            raise AuthError("Malformed token response") from exc
        if not token.access_token:
            raise AuthError()
        return token.access_token

    async def aclose(self) -> None:
        await self.client.aclose()
