from typing import Optional, Protocol

from ..schemas import RepoSearchResponse, Repository


class TokenSource(Protocol):
    def get(self) -> Optional[str]:
        ...


class AuthDataSource(Protocol):
    def authorization_url(self, client_id: str) -> str:
        ...

    async def exchange_code(self, client_id: str, client_secret: str, code: str) -> str:
        ...


class RepositoryDataSource(Protocol):
    async def search_repositories(self, query: str) -> RepoSearchResponse:
        ...

    async def get_repository(self, owner: str, name: str) -> Repository:
        ...
