import asyncio
from typing import Coroutine, Set

from loguru import logger

from ..errors import InvalidTransition


class TaskScope:
    """Owns the tasks a flow starts, so its host can cancel them together."""

    def __init__(self, name: str = "scope"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> int:
        return len(self._tasks)

    def launch(self, coro: Coroutine) -> asyncio.Task:
        if self._closed:
            coro.close()
            raise InvalidTransition(f"{self.name} is closed")
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel_all(self) -> int:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug(f"[{self.name}] cancelled {len(pending)} task(s)")
        return len(pending)

    def close(self) -> None:
        self._closed = True
        self.cancel_all()
