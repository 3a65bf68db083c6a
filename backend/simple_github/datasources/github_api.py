import asyncio
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import NetworkError, NotFound, Unauthenticated
from ..schemas import RepoSearchResponse, Repository
from .base import RepositoryDataSource, TokenSource
from .http import USER_AGENT, client_kwargs


def _segment(value: str) -> str:
    # one path segment, never a traversal
    if value in (".", ".."):
        raise NotFound(f"Not found: {value}")
    return quote(value, safe="")


class TokenAuth(httpx.Auth):
    """Attaches the stored token to every request, or refuses to send it."""

    def __init__(self, tokens: TokenSource, scheme: str = "token"):
        self.tokens = tokens
        self.scheme = scheme

    def _authorize(self, request: httpx.Request, token: Optional[str]) -> httpx.Request:
        if not token:
            raise Unauthenticated()
        request.headers["Authorization"] = f"{self.scheme} {token}"
        return request

    def sync_auth_flow(self, request):
        yield self._authorize(request, self.tokens.get())

    async def async_auth_flow(self, request):
        # the token store hits the database, keep it off the event loop
        token = await asyncio.to_thread(self.tokens.get)
        yield self._authorize(request, token)


class GithubApi(RepositoryDataSource):
    def __init__(
        self,
        settings: Settings,
        tokens: TokenSource,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        self.client = httpx.AsyncClient(
            auth=TokenAuth(tokens, settings.github_auth_scheme),
            headers=self.headers,
            **client_kwargs(
                str(settings.github_api_base_url).rstrip("/"),
                settings.github_proxy,
                transport,
            ),
        )

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = await self.client.get(path, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                raise NotFound(f"Not found: {path}") from exc
            raise NetworkError(
                f"Not successful: {status} {exc.response.reason_phrase}"
            ) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"GitHub request error: {type(exc).__name__}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkError("Malformed response body") from exc

    async def search_repositories(self, query: str) -> RepoSearchResponse:
        data = await self._get_json("/search/repositories", params={"q": query})
        try:
            return RepoSearchResponse.model_validate(data)
        except ValidationError as exc:
            raise NetworkError("Malformed search response") from exc

    async def get_repository(self, owner: str, name: str) -> Repository:
        data = await self._get_json(f"/repos/{_segment(owner)}/{_segment(name)}")
        try:
            return Repository.model_validate(data)
        except ValidationError as exc:
            raise NetworkError("Malformed repository response") from exc

    async def aclose(self) -> None:
        await self.client.aclose()
