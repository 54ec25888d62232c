"""Configuration management for gitdash."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class GitDashSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    repo_path: Path = Field(default=Path("."), validation_alias="GITDASH_REPO_PATH")
    execution_mode: Literal["auto", "local", "remote", "manual"] = Field(
        default="auto", validation_alias="GITDASH_EXECUTION_MODE"
    )
    git_path: str | None = Field(default=None, validation_alias="GITDASH_GIT_PATH")
    remote_url: str = Field(
        default="http://localhost:3000/git", validation_alias="GITDASH_REMOTE_URL"
    )
    probe_timeout: float = Field(default=2.0, validation_alias="GITDASH_PROBE_TIMEOUT")
    command_timeout: float | None = Field(default=None, validation_alias="GITDASH_COMMAND_TIMEOUT")
    integration_branch: str = Field(default="develop", validation_alias="GITDASH_INTEGRATION_BRANCH")
    fallback_branch: str = Field(default="main", validation_alias="GITDASH_FALLBACK_BRANCH")
    remote_name: str = Field(default="origin", validation_alias="GITDASH_REMOTE_NAME")
    user_name: str = Field(default="user", validation_alias="GITDASH_USER")
    history_capacity: int = Field(default=50, validation_alias="GITDASH_HISTORY_CAPACITY")
    chroma_persist_path: Path = Field(
        default=Path("./storage/chroma"), validation_alias="GITDASH_CHROMA_PATH"
    )
    tutorial_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(), validation_alias="GITDASH_TUTORIAL_PATHS"
    )
    log_level: str = Field(default="INFO", validation_alias="GITDASH_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "GITDASH_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("tutorial_paths", mode="before")
    @classmethod
    def _parse_tutorial_paths(cls, value):
        if value is None or value == "":
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts)
        raise TypeError("GITDASH_TUTORIAL_PATHS must be a list of paths or a path-separated string")

    @field_validator("history_capacity")
    @classmethod
    def _validate_history_capacity(cls, value: int) -> int:
        if value < 1:
            raise ValueError("GITDASH_HISTORY_CAPACITY must be >= 1")
        return value

    @field_validator("probe_timeout", "command_timeout")
    @classmethod
    def _validate_timeouts(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeouts must be positive seconds")
        return value

    @field_validator("remote_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> GitDashSettings:
    """Return cached settings instance."""

    settings = GitDashSettings()
    settings.repo_path = settings.repo_path.expanduser().resolve()
    settings.chroma_persist_path = settings.chroma_persist_path.expanduser().resolve()
    settings.tutorial_paths = tuple(path.expanduser().resolve() for path in settings.tutorial_paths)
    return settings


__all__ = ["GitDashSettings", "get_settings"]
