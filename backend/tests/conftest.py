from typing import Callable, Dict

import pytest

from simple_github.config import Settings
from simple_github.db import create_db_engine, init_db
from simple_github.schemas import Repository
from simple_github.services.credentials import CredentialStore
from simple_github.services.history import SearchHistoryStore


def repo_payload(full_name: str, **overrides) -> Dict:
    """A repository object shaped like the GitHub REST API returns it."""
    owner, name = full_name.split("/", 1)
    payload = {
        "name": name,
        "full_name": full_name,
        "owner": {
            "login": owner,
            "avatar_url": f"https://avatars.githubusercontent.com/{owner}",
        },
        "description": f"{name} description",
        "language": "Python",
        "updated_at": "2021-05-01T12:00:00Z",
        "stargazers_count": 42,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def repo_json() -> Callable[..., Dict]:
    return repo_payload


@pytest.fixture
def make_repo() -> Callable[..., Repository]:
    def factory(full_name: str, **overrides) -> Repository:
        return Repository.model_validate(repo_payload(full_name, **overrides))

    return factory


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        GITHUB_CLIENT_ID="client-id",
        GITHUB_CLIENT_SECRET="client-secret",
        DATABASE_URL=f"sqlite:///{tmp_path / 'simple_github.db'}",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def credentials(engine) -> CredentialStore:
    return CredentialStore(engine)


@pytest.fixture
def history(engine) -> SearchHistoryStore:
    store = SearchHistoryStore(engine)
    yield store
    store.close()
