"""
repo_concat — Download a GitHub repository into a single text file.

Every file of the repository that survives the include/exclude globs is fetched
through the GitHub contents API and appended to the output as

    <blank line>
    //file: <path relative to the repository root>
    <raw content>

Directories are always traversed; only file paths are filtered, and an exclude
match always wins over an include match.

Usage
-----
Run `repo-concat --help` for full options. Common examples:
    - Whole repository:
        repo-concat https://github.com/owner/repo out.txt

    - Only TypeScript sources, without tests:
        repo-concat https://github.com/owner/repo out.txt -i "src/**" -e "*.test.ts,*.spec.ts"

    - A tag, with reproducible ordering and logs in a file:
        repo-concat https://github.com/owner/repo out.txt --ref v1.2.0 --sort --log-file run.log

The API token is read from `GITHUB_TOKEN` (the environment or a `.env` file),
or given with `--token`. Without a token the API is used anonymously.
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING, Any

from repo_concat import __version__
from repo_concat.cancellation import SignalCancellation
from repo_concat.exceptions import (
    AggregationCancelledError,
    InputValidationError,
    OutputWriteError,
    RemoteApiError,
    RepoConcatError,
)
from repo_concat.filters import split_globs
from repo_concat.github import GitHubClient, parse_repo_url
from repo_concat.logging import logger, setup_logging
from repo_concat.output_construction import aggregate, write_output
from repo_concat.settings import Settings, build_settings, load_config_file, resolve_token

if TYPE_CHECKING:
    from collections.abc import Sequence

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

_ERROR_PREFIX: dict[type[RepoConcatError], str] = {
    InputValidationError: "Validation error",
    RemoteApiError: "Error downloading files",
    OutputWriteError: "Error writing output",
    AggregationCancelledError: "Cancelled",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="repo-concat",
        description="Download the files of a GitHub repository into a single text file.",
    )
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("repo_url", help="GitHub repository URL.")
    p.add_argument("output", help="Output file path.")
    p.add_argument(
        "-e",
        "--exclude",
        type=split_globs,
        default=None,
        help="Exclude files matching patterns (comma-separated).",
    )
    p.add_argument(
        "-i",
        "--include",
        type=split_globs,
        default=None,
        help="Include only files matching patterns (comma-separated).",
    )
    p.add_argument("--ref", default=None, help="Branch, tag or commit to read (default branch if omitted).")
    p.add_argument(
        "--sort",
        action="store_true",
        default=None,
        help="Sort directory listings by path for reproducible output.",
    )
    p.add_argument("--token", default=None, help="API token (defaults to $GITHUB_TOKEN).")
    p.add_argument("--api-url", default=None, help="REST API base URL (GitHub Enterprise).")
    p.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds.")
    p.add_argument("--config", default=None, help="YAML file with default options.")
    p.add_argument("--log-file", default="", help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Merge config-file defaults with command-line values and validate them.

    Command-line values win over the config file; options left unset on both
    keep the Settings defaults.

    Raises:
        InputValidationError: if the config file or any value is invalid
    """
    values: dict[str, Any] = load_config_file(args.config) if args.config else {}
    cli_values = {
        "exclude": args.exclude,
        "include": args.include,
        "ref": args.ref,
        "sort": args.sort,
        "token": args.token,
        "api_url": args.api_url,
        "timeout": args.timeout,
    }
    values.update({k: v for k, v in cli_values.items() if v is not None})
    return build_settings(
        repo_url=args.repo_url,
        output=args.output,
        log_file=args.log_file,
        **values,
    )


def download_and_concat(settings: Settings) -> str:
    """Fetch and concatenate every selected file of the configured repository.

    SIGINT and SIGTERM cancel the traversal between two requests; a signal
    received during the last request still cancels the run.

    Raises:
        InputValidationError: if the URL does not name a repository
        RemoteApiError: if any API call fails
        AggregationCancelledError: if the run was interrupted
    """
    repo = parse_repo_url(str(settings.repo_url))
    token = resolve_token(settings.token)
    log = logger.bind(repo=repo.full_name, ref=settings.ref, authenticated=bool(token))
    log.info("download_started")
    with (
        SignalCancellation() as cancel,
        GitHubClient(
            token,
            api_url=str(settings.api_url),
            ref=settings.ref,
            timeout=settings.timeout,
            cancel=cancel,
        ) as client,
    ):
        content = aggregate(
            client,
            repo,
            settings.filter_config(),
            sort_entries=settings.sort,
            cancel=cancel,
        )
        cancel.raise_if_cancelled()
    log.info("aggregation_complete", chars=len(content))
    return content


def _report(error: RepoConcatError) -> None:
    prefix = _ERROR_PREFIX.get(type(error), "Error")
    logger.error("run_failed", error_type=type(error).__name__, error=str(error))
    print(f"{prefix}: {error}", file=sys.stderr)  # noqa: T201


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.log_file:
        setup_logging(args.log_file)

    try:
        settings = settings_from_args(args)
        content = download_and_concat(settings)
        write_output(settings.output, content)
    except AggregationCancelledError as e:
        _report(e)
        return EXIT_CANCELLED
    except KeyboardInterrupt:
        _report(AggregationCancelledError(path=""))
        return EXIT_CANCELLED
    except RepoConcatError as e:
        _report(e)
        return EXIT_FAILURE
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    raise SystemExit(main())


if __name__ == "__main__":
    run()
