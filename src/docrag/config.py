"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

from docrag.embedding.client import (
    DEFAULT_BASE_URL,
    DEFAULT_BATCH_DELAY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_INPUT_CHARS,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT,
)
from docrag.errors import ConfigError
from docrag.models import RepoConfig

CACHE_DIR_NAME = ".docrag"
CACHE_FILE_NAME = "embeddings-cache.json"
DEFAULT_TOP_K = 3

_REQUIRED_ENV = {
    "owner": "REPO_OWNER",
    "repo": "REPO_NAME",
    "branch": "REPO_BRANCH",
    "root_path": "REPO_PATH",
    "api_key": "OPENAI_API_KEY",
}


def read_env_file() -> None:
    """Load the nearest `.env` above the working directory without overriding the environment."""
    load_dotenv(find_dotenv(usecwd=True), override=False)


def default_cache_path(environ: Mapping[str, str] | None = None) -> Path:
    """Snapshot location, `DOCRAG_CACHE_PATH` or a file under the user's home."""
    environ = os.environ if environ is None else environ
    override = environ.get("DOCRAG_CACHE_PATH")
    if override:
        return Path(override).expanduser()
    return Path.home() / CACHE_DIR_NAME / CACHE_FILE_NAME


@dataclass(slots=True)
class AppConfig:
    repo: RepoConfig
    api_key: str = ""
    cache_path: Path | None = None
    api_base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL
    batch_size: int = DEFAULT_BATCH_SIZE
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS
    batch_delay: float = DEFAULT_BATCH_DELAY
    top_k: int = DEFAULT_TOP_K
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.cache_path is None:
            self.cache_path = default_cache_path()
        else:
            self.cache_path = Path(self.cache_path).expanduser()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, load_env_file: bool = True) -> "AppConfig":
        """Build a config from environment variables.

        A ``.env`` file found by walking up from the working directory is
        loaded first; variables already set in the environment take precedence.
        """
        if environ is None:
            if load_env_file:
                read_env_file()
            environ = os.environ

        values = {key: environ.get(var, "").strip() for key, var in _REQUIRED_ENV.items()}
        missing = sorted(_REQUIRED_ENV[key] for key, value in values.items() if not value)
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        return cls(
            repo=RepoConfig(
                owner=values["owner"],
                repo=values["repo"],
                branch=values["branch"],
                root_path=values["root_path"],
            ),
            api_key=values["api_key"],
            cache_path=default_cache_path(environ),
            api_base_url=(environ.get("OPENAI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            model_name=environ.get("EMBEDDING_MODEL") or DEFAULT_MODEL,
        )
