"""CLI entry point: thanks-stars [run] [-p PATH] [--dry-run] | thanks-stars auth [--token T]"""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

import httpx
from dotenv import load_dotenv

from .config import GitHubConfig, TokenStore
from .errors import DiscoveryError, GitHubError, NoFrameworksError, causal_chain
from .github import GitHubClient
from .http_client import build_http_client
from .models import Framework, RunSummary
from .pipeline import run
from .render import ConsoleRunHandler

log = logging.getLogger(__name__)


def _add_run_arguments(parser: argparse.ArgumentParser, subcommand: bool = False) -> None:
    # On the `run` subparser, unset options must not overwrite ones given before it
    default = argparse.SUPPRESS if subcommand else None
    parser.add_argument(
        "-p", "--path",
        default=default if subcommand else ".",
        help="Path to the project root (default: current directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=default if subcommand else False,
        help="Report what would be starred without starring anything",
    )
    parser.add_argument(
        "--framework",
        action="append",
        default=default,
        type=Framework,
        choices=list(Framework),
        metavar="NAME",
        help="Scan only this framework (repeatable; default: detect from marker files)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=default if subcommand else False,
        help="Enable debug logging",
    )
    parser.add_argument(
        "-o", "--output",
        default=default,
        help="Write a JSON summary of the run to file",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thanks-stars",
        description="Star the GitHub repositories of your dependencies.",
    )
    _add_run_arguments(parser)

    subparsers = parser.add_subparsers(dest="command")
    run_parser = subparsers.add_parser("run", help="Star dependencies for the project (default)")
    _add_run_arguments(run_parser, subcommand=True)
    auth_parser = subparsers.add_parser(
        "auth", help="Save the GitHub personal access token used for starring",
    )
    auth_parser.add_argument(
        "--token",
        help="GitHub personal access token (prompted for if omitted)",
    )
    return parser


def _prompt_for_token() -> str:
    print("GitHub personal access token: ", end="", flush=True)
    return sys.stdin.readline().strip()


def _handle_auth(args: argparse.Namespace) -> None:
    token = (args.token or "").strip() or _prompt_for_token()
    if not token:
        print("Error: token must not be empty", file=sys.stderr)
        sys.exit(1)

    store = TokenStore()
    try:
        path = store.save_token(token)
    except OSError as e:
        print(f"Error: failed to save GitHub token: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Token saved to {path}")


async def _star_dependencies(
    project_root: Path,
    config: GitHubConfig,
    args: argparse.Namespace,
) -> RunSummary:
    async with build_http_client(timeout=config.timeout) as client:
        async with GitHubClient(config.token, client, base_url=config.api_base) as github:
            return await run(
                project_root,
                api=github,
                client=client,
                frameworks=args.framework,
                dry_run=args.dry_run,
                handler=ConsoleRunHandler(dry_run=args.dry_run),
            )


def _handle_run(args: argparse.Namespace) -> None:
    project_root = Path(args.path).resolve()
    if not project_root.is_dir():
        print(f"Error: {project_root} is not a directory", file=sys.stderr)
        sys.exit(1)

    try:
        config = GitHubConfig.from_env()
    except ValueError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)
    log.debug("Using %r", config)

    t0 = time.time()
    try:
        summary = asyncio.run(_star_dependencies(project_root, config, args))
    except NoFrameworksError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except DiscoveryError as e:
        print(f"Discovery error: {causal_chain(e)}", file=sys.stderr)
        log.debug("DiscoveryError detail", exc_info=True)
        sys.exit(1)
    except GitHubError as e:
        print(f"GitHub error: {causal_chain(e)}", file=sys.stderr)
        log.debug("GitHubError detail", exc_info=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"HTTP error: {causal_chain(e)}", file=sys.stderr)
        log.debug("HTTPError detail", exc_info=True)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {type(e).__name__}: {causal_chain(e)}", file=sys.stderr)
        log.debug("Unexpected exception", exc_info=True)
        sys.exit(1)
    elapsed_ms = (time.time() - t0) * 1000

    if args.output:
        output = {
            "project_root": str(project_root),
            "dry_run": args.dry_run,
            "newly_starred": summary.newly_starred_count,
            "already_starred": summary.already_starred_count,
            "repositories": [
                {
                    "url": item.repository.url,
                    "owner": item.repository.owner,
                    "name": item.repository.name,
                    "via": item.repository.via,
                    "already_starred": item.already_starred,
                }
                for item in summary.starred
            ],
            "execution_time_ms": round(elapsed_ms, 1),
        }
        try:
            Path(args.output).write_text(json.dumps(output, indent=2))
        except OSError as e:
            print(f"Error: failed to write {args.output}: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Results written to {args.output}", file=sys.stderr)


def main():
    load_dotenv()

    args = _build_parser().parse_args()

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    if args.command == "auth":
        _handle_auth(args)
    else:
        _handle_run(args)


if __name__ == "__main__":
    main()
