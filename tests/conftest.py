from __future__ import annotations

import json
from typing import Any
from urllib.parse import unquote

import pytest
import requests
from pytest_mock import MockerFixture
from requests.structures import CaseInsensitiveDict

from repo_concat.config import RAW_MEDIA_TYPE, RepositoryReference

API_URL = "https://api.github.com"

Tree = dict[str, Any]


def make_response(url: str, status: int, body: str | bytes) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.reason = "OK" if status < 400 else "Error"  # noqa: PLR2004
    resp._content = body.encode("utf-8") if isinstance(body, str) else body  # noqa: SLF001
    resp.encoding = "utf-8"
    return resp


class FakeGitHubSession:
    """Stand-in for `requests.Session` answering GitHub contents API calls from a nested dict.

    Directories are dicts, files are strings (or bytes); listing order is the
    dict insertion order. `failures` maps a repository path to an HTTP status.
    """

    def __init__(
        self,
        tree: Tree,
        *,
        owner: str = "owner",
        name: str = "repo",
        failures: dict[str, int] | None = None,
        raise_on: dict[str, Exception] | None = None,
    ) -> None:
        self.tree = tree
        self.prefix = f"{API_URL}/repos/{owner}/{name}/contents"
        self.failures = failures or {}
        self.raise_on = raise_on or {}
        self.headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def _lookup(self, path: str) -> Tree | str | bytes | None:
        node: Tree | str | bytes = self.tree
        for part in [p for p in path.split("/") if p]:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        accept = (headers or {}).get("Accept", "")
        path = unquote(url.removeprefix(self.prefix)).strip("/")
        self.calls.append({"url": url, "path": path, "accept": accept, "params": params, "timeout": timeout})
        if path in self.raise_on:
            raise self.raise_on[path]
        if path in self.failures:
            return make_response(url, self.failures[path], json.dumps({"message": "Not Found"}))
        node = self._lookup(path) if url.startswith(self.prefix) else None
        if node is None:
            return make_response(url, 404, json.dumps({"message": "Not Found"}))
        if accept == RAW_MEDIA_TYPE:
            return make_response(url, 200, node if isinstance(node, (str, bytes)) else "")
        if isinstance(node, dict):
            listing = [
                {"path": f"{path}/{k}" if path else k, "type": "dir" if isinstance(v, dict) else "file"}
                for k, v in node.items()
            ]
            return make_response(url, 200, json.dumps(listing))
        return make_response(url, 200, json.dumps({"path": path, "type": "file"}))

    @property
    def requested_paths(self) -> list[str]:
        return [c["path"] for c in self.calls]


@pytest.fixture
def repo_ref() -> RepositoryReference:
    return RepositoryReference(owner="owner", name="repo")


@pytest.fixture
def sample_tree() -> Tree:
    return {
        "README.md": "# demo\n",
        "src": {
            "a.ts": "export const a = 1;\n",
            "util": {"b.ts": "export const b = 2;\n"},
        },
        "lib": {"c.js": "module.exports = 3;\n"},
        "package.json": '{"name": "demo"}\n',
    }


@pytest.fixture
def fake_github() -> type[FakeGitHubSession]:
    """Factory for fake GitHub sessions: `fake_github(tree, failures=..., raise_on=...)`."""
    return FakeGitHubSession


@pytest.fixture
def http_response() -> Any:  # noqa: ANN401
    """Factory building a `requests.Response`: `http_response(url, status, body)`."""
    return make_response


@pytest.fixture
def offline_github(mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch) -> Any:  # noqa: ANN401
    """Route every `requests.Session` created by the client to a fake GitHub.

    Usage: `session = offline_github(tree, failures=...)`. No token is picked up
    from the environment or a `.env` file.
    """
    monkeypatch.setattr("repo_concat.settings.ENV_FILE", "")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    def install(tree: Tree, **kwargs: Any) -> FakeGitHubSession:  # noqa: ANN401
        session = FakeGitHubSession(tree, **kwargs)
        mocker.patch("repo_concat.github.requests.Session", return_value=session)
        return session

    return install
