"""Configuration loading helpers for filesweep."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import SweepConfig

CONFIG_FILENAME = "config.yaml"
HOME_ENV = "FILESWEEP_HOME"
TOKEN_ENVS = ("FILESWEEP_TOKEN", "GITHUB_TOKEN")


class MissingTokenError(RuntimeError):
    """Raised when no API token is available in the environment."""


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: SweepConfig | None = None

    def load_config(self) -> SweepConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            config = SweepConfig.model_validate(_read_file(path))
        else:
            config = SweepConfig()
            self.save_config(config)
        self._cache = config
        return config

    def save_config(self, config: SweepConfig) -> None:
        _write_file(self.locator.config_path(), config.model_dump(mode="json"))
        self._cache = config

    def db_path(self) -> Path:
        return self.load_config().resolved_db_path(self.locator.project_root)


def resolve_token(environ: Mapping[str, str] | None = None) -> str:
    """Return the API token from the first populated token variable."""

    env = os.environ if environ is None else environ
    for name in TOKEN_ENVS:
        token = (env.get(name) or "").strip()
        if token:
            return token
    raise MissingTokenError(
        f"No API token found; set one of {', '.join(TOKEN_ENVS)} in the environment"
    )


__all__ = [
    "CONFIG_FILENAME",
    "ConfigLocator",
    "ConfigRepository",
    "MissingTokenError",
    "TOKEN_ENVS",
    "resolve_token",
]
