import asyncio
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from ..datasources.base import RepositoryDataSource
from ..errors import ConfigurationError, MissingLoginData, SimpleGithubError
from ..schemas import Repository, RepositoryDetail
from .channels import StateChannel
from .flow import BaseFlow
from .scope import TaskScope

RESPONSE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
DISPLAY_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_DESCRIPTION = "No description provided."
NO_LANGUAGE = "No language specified."
UNKNOWN = "unknown"


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown DISPLAY_TIMEZONE: {name}") from exc


def format_updated_at(value: Optional[str], tz: tzinfo = timezone.utc) -> str:
    """``2021-05-01T12:00:00Z`` -> ``2021-05-01 12:00:00``, or ``unknown``."""
    try:
        parsed = datetime.strptime(value, RESPONSE_DATE_FORMAT)
    except (TypeError, ValueError):
        logger.debug(f"[detail] unparseable updated_at: {value!r}")
        return UNKNOWN
    return parsed.astimezone(tz).strftime(DISPLAY_DATE_FORMAT)


def format_stars(count: int) -> str:
    return "1 star" if count == 1 else f"{count} stars"


def render_repository(repo: Repository, tz: tzinfo = timezone.utc) -> RepositoryDetail:
    return RepositoryDetail(
        full_name=repo.full_name,
        owner_login=repo.owner.login,
        name=repo.name,
        avatar_url=repo.owner.avatar_url,
        stars=repo.stars,
        stars_text=format_stars(repo.stars),
        description=repo.description if repo.description is not None else NO_DESCRIPTION,
        language=repo.language if repo.language is not None else NO_LANGUAGE,
        last_update=format_updated_at(repo.updated_at, tz),
    )


class RepositoryDetailFlow(BaseFlow):
    tag = "detail"

    def __init__(
        self,
        api: RepositoryDataSource,
        display_timezone: tzinfo = timezone.utc,
        scope: Optional[TaskScope] = None,
    ):
        super().__init__(scope)
        self.api = api
        self.display_timezone = display_timezone
        self.detail: StateChannel[RepositoryDetail] = StateChannel()

    async def load(self, owner_login: Optional[str], repo_name: Optional[str]) -> RepositoryDetail:
        if not owner_login or not owner_login.strip():
            raise MissingLoginData("No login info exists")
        if not repo_name or not repo_name.strip():
            raise MissingLoginData("No repo info exists")

        self.is_loading.publish(True)
        try:
            repo = await self.api.get_repository(owner_login.strip(), repo_name.strip())
        except SimpleGithubError as exc:
            self.report(exc)
            raise
        finally:
            self.is_loading.publish(False)

        detail = render_repository(repo, self.display_timezone)
        self.detail.publish(detail)
        return detail

    def show(self, owner_login: Optional[str], repo_name: Optional[str]) -> asyncio.Task:
        """Load in the background, cancelled when the flow is closed."""
        return self.scope.launch(self.load(owner_login, repo_name))

    def close(self) -> None:
        super().close()
        self.detail.close()
