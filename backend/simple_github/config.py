from functools import lru_cache
from typing import Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    github_client_id: Optional[str] = Field(default=None, alias="GITHUB_CLIENT_ID")
    github_client_secret: Optional[str] = Field(
        default=None, alias="GITHUB_CLIENT_SECRET"
    )
    github_oauth_base_url: HttpUrl = Field(
        default="https://github.com", alias="GITHUB_OAUTH_BASE_URL"
    )
    github_api_base_url: HttpUrl = Field(
        default="https://api.github.com", alias="GITHUB_API_BASE_URL"
    )
    # GitHub accepts both "token" and "Bearer"
    github_auth_scheme: str = Field(default="token", alias="GITHUB_AUTH_SCHEME")
    github_proxy: Optional[str] = Field(default=None, alias="GITHUB_PROXY")
    database_url: str = Field(
        default="sqlite:///simple_github.db", alias="DATABASE_URL"
    )
    display_timezone: str = Field(default="UTC", alias="DISPLAY_TIMEZONE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"  # ignore unrelated env vars to avoid validation errors


@lru_cache
def get_settings() -> Settings:
    return Settings()
