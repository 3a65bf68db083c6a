import asyncio
from typing import Optional

from loguru import logger

from ..datasources.base import RepositoryDataSource
from ..errors import EmptyResult, InvalidQuery, SimpleGithubError
from ..schemas import RepoSearchResponse, Repository, SearchState
from .channels import StateChannel
from .flow import BaseFlow
from .history import SearchHistoryStore
from .scope import TaskScope


class SearchFlow(BaseFlow):
    """Repository search where the latest query always wins.

    Submitting a query cancels the one in flight. Each run carries a
    generation number and only the current generation may publish, so a
    stale result is dropped even if it finished before it could be cancelled.
    """

    tag = "search"

    def __init__(
        self,
        api: RepositoryDataSource,
        history: SearchHistoryStore,
        scope: Optional[TaskScope] = None,
    ):
        super().__init__(scope)
        self.api = api
        self.history = history
        self.state: StateChannel[SearchState] = StateChannel(SearchState(status="idle"))
        self._current: Optional[asyncio.Task] = None
        self._generation = 0
        # history writes outlive the screen that triggered them
        self._writes = TaskScope("history-writes")

    def _publish(self, generation: int, state: SearchState) -> bool:
        if generation != self._generation:
            logger.debug(f"[search] dropped stale {state.status} for {state.query!r}")
            return False
        self.state.publish(state)
        return True

    async def _fetch(self, query: str) -> RepoSearchResponse:
        response = await self.api.search_repositories(query)
        if response.total_count == 0:
            raise EmptyResult()
        return response

    async def _run(self, query: str, generation: int) -> SearchState:
        self._publish(generation, SearchState(status="loading", query=query))
        self.is_loading.publish(True)
        try:
            response = await self._fetch(query)
        except EmptyResult as exc:
            state = SearchState(status="empty", query=query, message=exc.message)
        except SimpleGithubError as exc:
            failed = SearchState(status="failed", query=query, message=exc.message)
            if self._publish(generation, failed):
                self.report(exc)
            raise
        else:
            state = SearchState(
                status="results",
                query=query,
                total_count=response.total_count,
                items=response.items,
            )
            logger.info(
                f"[search] {query!r}: {len(response.items)} of {response.total_count}"
            )
        finally:
            if generation == self._generation:
                self.is_loading.publish(False)

        self._publish(generation, state)
        return state

    def submit(self, query: str) -> asyncio.Task:
        """Start a search, superseding any search still in flight."""
        query = (query or "").strip()
        if not query:
            raise InvalidQuery()

        if self._current is not None and not self._current.done():
            logger.debug("[search] superseding in-flight search")
            self._current.cancel()

        self._generation += 1
        self._current = self.scope.launch(self._run(query, self._generation))
        return self._current

    async def search(self, query: str) -> Optional[SearchState]:
        """Submit and wait. Returns ``None`` when a newer search superseded this one."""
        task = self.submit(query)
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    def select(self, repo: Repository) -> asyncio.Task:
        """Record ``repo`` in the search history."""
        return self._writes.launch(self.history.insert_or_update(repo))

    def close(self) -> None:
        super().close()
        self.state.close()
