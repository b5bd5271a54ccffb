from __future__ import annotations

import contextlib
import io
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from repo_concat.config import FILE_MARKER, RECORD_SEPARATOR
from repo_concat.exceptions import OutputWriteError
from repo_concat.filters import should_include
from repo_concat.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_concat.cancellation import CancellationToken
    from repo_concat.config import FilterConfig, RepositoryReference, TreeEntry


class RepositoryClient(Protocol):
    """What the traversal needs from a repository hosting client."""

    def list_directory(self, repo: RepositoryReference, path: str = "") -> Sequence[TreeEntry]: ...

    def fetch_file_raw(self, repo: RepositoryReference, path: str) -> str: ...


def format_record(path: str, content: str) -> str:
    """Build the output record of one file: separator, path marker line, raw content.

    Args:
        path (str): the file path relative to the repository root
        content (str): the raw file content, written unchanged

    Returns:
        str: the record, e.g. "\\n\\n//file: src/a.ts\\n<content>"
    """
    return f"{RECORD_SEPARATOR}{FILE_MARKER}{path}\n{content}"


def aggregate(
    client: RepositoryClient,
    repo: RepositoryReference,
    config: FilterConfig,
    dir_path: str = "",
    *,
    sort_entries: bool = False,
    cancel: CancellationToken | None = None,
) -> str:
    """Concatenate every selected file below `dir_path`, depth first.

    Files are checked against `config`; directories are always entered and
    never filtered. Entries are visited in the order the API lists them unless
    `sort_entries` asks for lexicographic order by path. Other entry kinds
    (symlinks, submodules) are skipped.

    Args:
        client (RepositoryClient): the client used for listings and raw fetches
        repo (RepositoryReference): the repository being read
        config (FilterConfig): include/exclude patterns for file paths
        dir_path (str): the directory to start from, the root when empty
        sort_entries (bool): sort each listing by path before visiting it
        cancel (CancellationToken | None): checked before every remote call

    Raises:
        RemoteApiError: if any listing or fetch fails; nothing is returned then
        AggregationCancelledError: if `cancel` was set during the traversal

    Returns:
        str: the concatenated records of the subtree, empty if nothing matched
    """
    if cancel is not None:
        cancel.raise_if_cancelled(dir_path)
    entries = list(client.list_directory(repo, dir_path))
    if sort_entries:
        entries.sort(key=lambda e: e.path)

    out = io.StringIO()
    for entry in entries:
        if entry.is_file:
            if not should_include(entry.path, config):
                logger.debug("file_skipped", path=entry.path)
                continue
            if cancel is not None:
                cancel.raise_if_cancelled(entry.path)
            content = client.fetch_file_raw(repo, entry.path)
            logger.debug("file_fetched", path=entry.path, chars=len(content))
            out.write(format_record(entry.path, content))
        elif entry.is_dir:
            out.write(aggregate(client, repo, config, entry.path, sort_entries=sort_entries, cancel=cancel))
        else:
            logger.debug("entry_ignored", path=entry.path, kind=str(entry.kind))
    return out.getvalue()


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_output(path: Path | str, content: str) -> None:
    """Write the aggregated text to `path` as UTF-8, replacing any existing file.

    The content goes to a temporary file next to the destination which is then
    moved over it, so the destination is either left untouched or complete.

    Args:
        path (Path | str): the output file
        content (str): the aggregated output, possibly empty

    Raises:
        OutputWriteError: if the file cannot be written
    """
    out_path = Path(path)
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="",
            dir=out_path.parent,
            prefix=f".{out_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(content)
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, out_path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                Path(tmp_name).unlink()
        raise OutputWriteError(path=out_path, reason=e.strerror or str(e)) from e
    logger.info("output_written", path=str(out_path), chars=len(content))
    print(f"Files downloaded and written to {out_path}")  # noqa: T201
