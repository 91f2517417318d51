"""Pydantic models used across the filesweep configuration flow."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_FILENAME = "package.json"

# Top-level keys documented for package.json; each one is a cheap search term
# that is valid inside every matching file.
PACKAGE_JSON_FIELDS: list[str] = [
    "name",
    "version",
    "description",
    "keywords",
    "homepage",
    "bugs",
    "license",
    "author",
    "contributors",
    "funding",
    "files",
    "main",
    "browser",
    "bin",
    "man",
    "directories",
    "repository",
    "scripts",
    "config",
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "bundledDependencies",
    "optionalDependencies",
    "engines",
    "os",
    "cpu",
    "private",
    "publishConfig",
]


def _default_vocabularies() -> dict[str, list[str]]:
    return {DEFAULT_FILENAME: list(PACKAGE_JSON_FIELDS)}


def _default_language_hints() -> dict[str, str]:
    return {DEFAULT_FILENAME: "JSON"}


class SweepConfig(BaseModel):
    """Global controls for search, pacing and storage."""

    api_base_url: str = "https://api.github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"
    user_agent: str = "filesweep"
    request_timeout: float = 30.0
    page_size: int = 100
    request_spacing: float = 3.0
    reset_buffer: float = 2.0
    workers: int = 16
    unique_content_hash: bool = True
    db_path: Path = Field(default=Path("data/filesweep.db"))
    default_filename: str = DEFAULT_FILENAME
    vocabularies: dict[str, list[str]] = Field(default_factory=_default_vocabularies)
    language_hints: dict[str, str] = Field(default_factory=_default_language_hints)

    @field_validator("api_base_url", "raw_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> str:
        return str(value).rstrip("/")

    @field_validator("db_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("vocabularies", mode="before")
    @classmethod
    def _coerce_vocabularies(cls, value: Any) -> dict[str, list[str]]:
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise ValueError("vocabularies expects a mapping of filename -> field names")
        return {str(name): [str(term).strip() for term in terms or []] for name, terms in value.items()}

    @model_validator(mode="after")
    def _validate_limits(self) -> "SweepConfig":
        if not 1 <= self.page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        if self.request_spacing < 0:
            raise ValueError("request_spacing must be >= 0")
        if self.reset_buffer < 0:
            raise ValueError("reset_buffer must be >= 0")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if not self.default_filename.strip():
            raise ValueError("default_filename cannot be empty")
        return self

    def vocabulary_for(self, filename: str) -> list[str]:
        """Return the known field names for ``filename`` (empty when unknown)."""

        return list(self.vocabularies.get(filename, []))

    def language_hint_for(self, filename: str) -> str | None:
        return self.language_hints.get(filename) or None

    def resolved_db_path(self, base_dir: Path) -> Path:
        """Return the SQLite path relative to the project home directory."""

        if not self.db_path.is_absolute():
            return (base_dir / self.db_path).resolve()
        return self.db_path


__all__ = ["DEFAULT_FILENAME", "PACKAGE_JSON_FIELDS", "SweepConfig"]
