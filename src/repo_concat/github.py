from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote

import requests
from pydantic import ValidationError

from repo_concat.config import (
    API_VERSION,
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT_S,
    GITHUB_URL_PREFIX,
    JSON_MEDIA_TYPE,
    RAW_MEDIA_TYPE,
    RepositoryReference,
    TreeEntry,
)
from repo_concat.exceptions import InputValidationError, RemoteApiError
from repo_concat.logging import logger

if TYPE_CHECKING:
    from types import TracebackType

    from repo_concat.cancellation import CancellationToken


def parse_repo_url(repo_url: str) -> RepositoryReference:
    """Split a `https://github.com/<owner>/<repo>` URL into owner and name.

    Anything after the second path segment (`/tree/main/...`, a trailing slash)
    is ignored, and a `.git` suffix on the name is dropped.

    Args:
        repo_url (str): a repository URL, already validated as a URL

    Raises:
        InputValidationError: if owner and name cannot be extracted

    Returns:
        RepositoryReference: the owner and name of the repository
    """
    remainder = repo_url.strip().replace(GITHUB_URL_PREFIX, "", 1)
    segments = remainder.split("/")
    owner = segments[0] if segments else ""
    name = segments[1] if len(segments) > 1 else ""
    name = name.removesuffix(".git")
    try:
        return RepositoryReference(owner=owner, name=name)
    except ValidationError as e:
        raise InputValidationError(
            errors=(f"repo_url: expected {GITHUB_URL_PREFIX}<owner>/<repo>, got {repo_url!r}",),
        ) from e


def _error_message(resp: requests.Response) -> str:
    msg = resp.text
    try:
        payload = resp.json() or {}
        if isinstance(payload, dict):
            msg = payload.get("message") or msg
    except ValueError:
        pass
    return str(msg)[:500] or resp.reason or "request failed"


class GitHubClient:
    """Read-only client for the GitHub repository contents API.

    The token is given explicitly and lives as long as the client. Without a
    token the requests are anonymous and subject to the lower rate limits.

    Args:
        token: Personal access token, or None for anonymous access.
        api_url: Base URL of the REST API.
        ref: Branch, tag or commit to read; None reads the default branch.
        timeout: Per-request timeout in seconds.
        session: HTTP session to use; a new `requests.Session` by default.
        cancel: Token checked before each request.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        ref: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        session: requests.Session | None = None,
        cancel: CancellationToken | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.ref = ref
        self.timeout = timeout
        self.cancel = cancel
        self.session = session or requests.Session()
        self.session.headers.update({"X-GitHub-Api-Version": API_VERSION})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def contents_url(self, repo: RepositoryReference, path: str = "") -> str:
        """URL of the contents endpoint for `path` (the root when empty)."""
        url = f"{self.api_url}/repos/{quote(repo.owner)}/{quote(repo.name)}/contents"
        path = path.strip("/")
        if path:
            url = f"{url}/{quote(path)}"
        return url

    def _get(self, repo: RepositoryReference, path: str, accept: str) -> requests.Response:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled(path)
        params = {"ref": self.ref} if self.ref else None
        try:
            resp = self.session.get(
                self.contents_url(repo, path),
                headers={"Accept": accept},
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteApiError(path=path, status_code=None, message=str(e)) from e
        if resp.status_code // 100 != 2:
            raise RemoteApiError(path=path, status_code=resp.status_code, message=_error_message(resp))
        return resp

    def list_directory(self, repo: RepositoryReference, path: str = "") -> list[TreeEntry]:
        """List the immediate children of `path`.

        The API answers with a single object when `path` is a file; the result
        is always a list.

        Raises:
            RemoteApiError: on any HTTP or transport failure, or an unexpected payload.
        """
        logger.debug("listing_directory", repo=repo.full_name, path=path)
        resp = self._get(repo, path, JSON_MEDIA_TYPE)
        try:
            payload: Any = resp.json()
        except ValueError as e:
            raise RemoteApiError(path=path, status_code=resp.status_code, message=f"Invalid JSON response: {e}") from e
        items = payload if isinstance(payload, list) else [payload]
        try:
            return [TreeEntry(path=item["path"], kind=item["type"]) for item in items]
        except (KeyError, TypeError, ValidationError) as e:
            raise RemoteApiError(
                path=path,
                status_code=resp.status_code,
                message=f"Unexpected listing payload: {e}",
            ) from e

    def fetch_file_raw(self, repo: RepositoryReference, path: str) -> str:
        """Fetch the raw content of one file, decoded as UTF-8.

        Raises:
            RemoteApiError: on any HTTP or transport failure.
        """
        logger.debug("fetching_file", repo=repo.full_name, path=path)
        resp = self._get(repo, path, RAW_MEDIA_TYPE)
        return resp.content.decode("utf-8", errors="replace")
