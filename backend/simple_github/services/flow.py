from typing import Optional

from loguru import logger

from ..errors import SimpleGithubError
from .channels import EventChannel, StateChannel
from .scope import TaskScope


class BaseFlow:
    """Common plumbing for user-facing flows.

    ``is_loading`` replays the latest loading flag, ``messages`` fires
    user-facing error text once. Work runs inside ``scope`` so the host can
    cancel it by closing the flow.
    """

    tag = "flow"

    def __init__(self, scope: Optional[TaskScope] = None):
        self.scope = scope or TaskScope(self.tag)
        self.is_loading: StateChannel[bool] = StateChannel(False)
        self.messages: EventChannel[str] = EventChannel()

    def report(self, exc: BaseException) -> str:
        if isinstance(exc, SimpleGithubError):
            message = exc.message
        else:
            message = str(exc) or "Unexpected error"
        logger.warning(f"[{self.tag}] {type(exc).__name__}: {message}")
        self.messages.publish(message)
        return message

    def close(self) -> None:
        self.scope.close()
        self.is_loading.close()
        self.messages.close()
