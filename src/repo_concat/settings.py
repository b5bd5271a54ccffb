from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationError, field_validator

from repo_concat.config import DEFAULT_API_URL, DEFAULT_TIMEOUT_S, TOKEN_ENV_VAR, FilterConfig
from repo_concat.exceptions import InputValidationError
from repo_concat.filters import make_filter_config

ENV_FILE = find_dotenv(usecwd=True)

CONFIG_FILE_KEYS = frozenset({"exclude", "include", "ref", "sort", "api_url", "timeout"})


class Settings(BaseModel):
    """Configuration settings for one repo_concat run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    repo_url: HttpUrl = Field(..., description="GitHub repository URL.")
    output: Path = Field(..., description="Output file path.")
    exclude: list[str] | None = Field(default=None, description="Exclude globs.")
    include: list[str] | None = Field(default=None, description="Include globs.")
    ref: str | None = Field(default=None, description="Branch, tag or commit to read.")
    sort: bool = Field(default=False, description="Sort directory listings by path.")
    token: str | None = Field(default=None, repr=False, description="API token.")
    api_url: HttpUrl = Field(default=DEFAULT_API_URL, validate_default=True, description="REST API base URL.")
    timeout: float = Field(default=DEFAULT_TIMEOUT_S, gt=0, description="Per-request timeout in seconds.")
    log_file: str = Field(default="", description="Log file path.")

    @field_validator("output", mode="before")
    @classmethod
    def _output_not_empty(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str) and not value.strip():
            msg = "output file path must not be empty"
            raise ValueError(msg)
        return value

    def filter_config(self) -> FilterConfig:
        """Include/exclude patterns of the run."""
        return make_filter_config(exclude=self.exclude, include=self.include)


def validation_messages(error: ValidationError) -> tuple[str, ...]:
    """Render pydantic errors as `field: message` lines."""
    out: list[str] = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "input"
        out.append(f"{loc}: {err['msg']}")
    return tuple(out)


def build_settings(**values: Any) -> Settings:  # noqa: ANN401
    """Validate run options, turning pydantic errors into InputValidationError.

    Raises:
        InputValidationError: listing every violated constraint
    """
    try:
        return Settings(**values)
    except ValidationError as e:
        raise InputValidationError(errors=validation_messages(e)) from e


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Read run defaults from a YAML file.

    Accepted keys are `exclude`, `include` (a list or a comma-separated
    string), `ref`, `sort`, `api_url` and `timeout`.

    Args:
        path (str | Path): the YAML file

    Raises:
        InputValidationError: if the file is unreadable, not a mapping or has unknown keys

    Returns:
        dict[str, Any]: the defaults found in the file
    """
    cfg_path = Path(path)
    try:
        data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise InputValidationError(errors=(f"config: cannot read {cfg_path}: {e.strerror or e}",)) from e
    except yaml.YAMLError as e:
        raise InputValidationError(errors=(f"config: invalid YAML in {cfg_path}: {e}",)) from e
    if not isinstance(data, dict):
        raise InputValidationError(errors=(f"config: {cfg_path} must contain a mapping",))
    unknown = sorted(set(data) - CONFIG_FILE_KEYS)
    if unknown:
        raise InputValidationError(errors=(f"config: unknown keys {', '.join(unknown)}",))
    for key in ("exclude", "include"):
        if isinstance(data.get(key), str):
            data[key] = data[key].split(",")
    return data


def resolve_token(explicit: str | None = None) -> str | None:
    """Return the API token: the explicit value, else `GITHUB_TOKEN`.

    The environment is completed from the nearest `.env` file first; variables
    already set in the process are not overridden.
    """
    if explicit:
        return explicit
    if ENV_FILE:
        load_dotenv(ENV_FILE, override=False)
    return os.environ.get(TOKEN_ENV_VAR) or None
