from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Owner(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    login: str
    avatar_url: str


class Repository(BaseModel):
    """A repository as returned by the REST API. ``full_name`` is its identity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    full_name: str
    owner: Owner
    description: Optional[str] = None
    language: Optional[str] = None
    updated_at: str
    stars: int = Field(alias="stargazers_count", ge=0)


class RepoSearchResponse(BaseModel):
    total_count: int
    items: List[Repository] = []


class GithubAccessToken(BaseModel):
    access_token: str
    token_type: Optional[str] = None
    scope: Optional[str] = None


class SignInState(str, Enum):
    IDLE = "idle"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    EXCHANGING_CODE = "exchanging_code"
    SIGNED_IN = "signed_in"
    FAILED = "failed"


class SignInStatus(BaseModel):
    state: SignInState
    signed_in: bool
    message: Optional[str] = None


class SearchState(BaseModel):
    status: Literal["idle", "loading", "results", "empty", "failed"]
    query: Optional[str] = None
    total_count: int = 0
    items: List[Repository] = []
    message: Optional[str] = None


class RepositoryDetail(BaseModel):
    full_name: str
    owner_login: str
    name: str
    avatar_url: str
    stars: int
    stars_text: str
    description: str
    language: str
    last_update: str
