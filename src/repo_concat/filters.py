from __future__ import annotations

from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from repo_concat.config import FilterConfig

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def normalize_globs(globs: Iterable[str]) -> list[str]:
    """Strip whitespace, use POSIX separators and drop empty patterns.

    Args:
        globs (Iterable[str]): raw patterns, e.g. split from a comma list

    Returns:
        list[str]: the cleaned patterns, in their original order
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not g2:
            continue
        out.append(g2.replace("\\", "/"))
    return out


def split_globs(value: str) -> list[str]:
    """Split a comma-separated pattern list as given on the command line."""
    return normalize_globs(value.split(","))


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Tell whether `rel` matches at least one of `globs`.

    Shell-glob semantics on the whole path: `*`, `?` and `[...]` stay within one
    path segment, a `**` segment spans any number of directories (zero included).
    Matching is case-sensitive.
    """
    path = PurePosixPath(rel)
    return any(path.full_match(g) for g in globs)


def make_filter_config(
    exclude: Sequence[str] | None = None,
    include: Sequence[str] | None = None,
) -> FilterConfig:
    """Build a FilterConfig, keeping None for an absent list.

    An explicitly empty list stays empty: it excludes nothing, and as an
    include list it keeps nothing.
    """
    return FilterConfig(
        exclude_patterns=None if exclude is None else tuple(normalize_globs(exclude)),
        include_patterns=None if include is None else tuple(normalize_globs(include)),
    )


def should_include(file_path: str, config: FilterConfig) -> bool:
    """Decide whether a file is emitted.

    Exclusion wins over inclusion, and a missing pattern list puts no
    constraint on its dimension.

    Args:
        file_path (str): the path of the file relative to the repository root
        config (FilterConfig): the patterns for the run

    Returns:
        bool: True if the file should be part of the output
    """
    rel = file_path.replace("\\", "/").lstrip("/")
    if config.exclude_patterns is not None and match_any_glob(rel, config.exclude_patterns):
        return False
    return not (config.include_patterns is not None and not match_any_glob(rel, config.include_patterns))
