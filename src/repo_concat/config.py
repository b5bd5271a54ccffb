from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field

GITHUB_URL_PREFIX = "https://github.com/"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_S = 30.0
TOKEN_ENV_VAR = "GITHUB_TOKEN"  # noqa: S105

FILE_MARKER = "//file: "
RECORD_SEPARATOR = "\n\n"

JSON_MEDIA_TYPE = "application/vnd.github+json"
RAW_MEDIA_TYPE = "application/vnd.github.raw+json"
API_VERSION = "2022-11-28"


class EntryKind(StrEnum):
    """Kind of a node as reported by the GitHub contents API."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    SUBMODULE = "submodule"


class RepositoryReference(BaseModel):
    """Owner and name of the remote repository for the whole run."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Account or organization owning the repository")
    name: str = Field(..., min_length=1, description="Repository name")

    @computed_field
    @property
    def full_name(self) -> str:
        """The `owner/name` form used in API paths."""
        return f"{self.owner}/{self.name}"


class FilterConfig(BaseModel):
    """Include/exclude glob patterns applied to file paths.

    Attributes:
        exclude_patterns: Globs removing any matching path. None means no exclusion.
        include_patterns: Globs a path must match to be kept. None means no constraint.
    """

    model_config = ConfigDict(frozen=True)

    exclude_patterns: tuple[str, ...] | None = Field(default=None, description="Exclude globs")
    include_patterns: tuple[str, ...] | None = Field(default=None, description="Include globs")


class TreeEntry(BaseModel):
    """One item of a directory listing, read once during traversal."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path relative to the repository root")
    kind: EntryKind = Field(..., description="Node kind")

    @computed_field
    @property
    def is_file(self) -> bool:
        """Whether the entry is a regular file."""
        return self.kind is EntryKind.FILE

    @computed_field
    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory."""
        return self.kind is EntryKind.DIR
