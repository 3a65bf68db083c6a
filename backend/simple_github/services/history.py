import asyncio
import threading
from typing import AsyncIterator, List, Tuple

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine

from ..db import SearchHistoryEntry, make_session_factory
from ..schemas import Owner, Repository
from .channels import StateChannel


def _to_entry(repo: Repository, position: int) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        full_name=repo.full_name,
        name=repo.name,
        owner_login=repo.owner.login,
        owner_avatar_url=repo.owner.avatar_url,
        description=repo.description,
        language=repo.language,
        updated_at=repo.updated_at,
        stars=repo.stars,
        position=position,
    )


def _to_repository(entry: SearchHistoryEntry) -> Repository:
    return Repository(
        name=entry.name,
        full_name=entry.full_name,
        owner=Owner(login=entry.owner_login, avatar_url=entry.owner_avatar_url),
        description=entry.description,
        language=entry.language,
        updated_at=entry.updated_at,
        stars=entry.stars,
    )


class SearchHistoryStore:
    """Recently viewed repositories, most recent first, keyed by ``full_name``.

    Database work runs in worker threads. Every write bumps a version and
    pushes a fresh list to observers, older snapshots never overwrite newer
    ones.
    """

    def __init__(self, engine: Engine):
        SearchHistoryEntry.__table__.create(bind=engine, checkfirst=True)
        self.session_factory = make_session_factory(engine)
        self._lock = threading.Lock()
        self._version = 0
        self._published_version = -1
        self._changes: StateChannel[List[Repository]] = StateChannel()

    # blocking helpers, called through asyncio.to_thread

    def _upsert(self, repo: Repository) -> None:
        with self._lock:
            with self.session_factory() as session, session.begin():
                top = session.scalar(select(func.max(SearchHistoryEntry.position)))
                session.merge(_to_entry(repo, (top or 0) + 1))
            self._version += 1

    def _remove(self, full_name: str) -> bool:
        with self._lock:
            with self.session_factory() as session, session.begin():
                result = session.execute(
                    delete(SearchHistoryEntry).where(SearchHistoryEntry.full_name == full_name)
                )
            if result.rowcount:
                self._version += 1
            return bool(result.rowcount)

    def _clear(self) -> None:
        with self._lock:
            with self.session_factory() as session, session.begin():
                session.execute(delete(SearchHistoryEntry))
            self._version += 1

    def _snapshot(self) -> Tuple[int, List[Repository]]:
        with self._lock:
            with self.session_factory() as session:
                rows = session.scalars(
                    select(SearchHistoryEntry).order_by(SearchHistoryEntry.position.desc())
                ).all()
                return self._version, [_to_repository(row) for row in rows]

    async def _refresh(self) -> List[Repository]:
        version, items = await asyncio.to_thread(self._snapshot)
        if version >= self._published_version:
            self._published_version = version
            self._changes.publish(items)
        return items

    # public API

    async def insert_or_update(self, repo: Repository) -> None:
        await asyncio.to_thread(self._upsert, repo)
        logger.debug(f"[history] saved {repo.full_name}")
        await self._refresh()

    async def remove(self, full_name: str) -> bool:
        removed = await asyncio.to_thread(self._remove, full_name)
        if removed:
            logger.debug(f"[history] removed {full_name}")
            await self._refresh()
        return removed

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)
        logger.info("[history] cleared")
        await self._refresh()

    async def list(self) -> List[Repository]:
        _, items = await asyncio.to_thread(self._snapshot)
        return items

    async def observe(self) -> AsyncIterator[List[Repository]]:
        """Yield the current list, then a new one after every change."""
        updates = self._changes.subscribe()
        try:
            if not self._changes.has_value:
                await self._refresh()
            async for items in updates:
                yield items
        finally:
            await updates.aclose()

    def close(self) -> None:
        self._changes.close()
