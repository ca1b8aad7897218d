"""CLI entrypoint for chain-test-session: report on, inspect, or destroy a session store."""

import argparse
import asyncio
import logging
import os
import sys

from chain_test_session.errors import ChainTestSessionError
from chain_test_session.session import TestSession

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "CHAIN_TEST_SESSION_LOG_LEVEL"


async def _report(args: argparse.Namespace) -> int:
    session = await TestSession.load(args.session, args.folder)
    try:
        path = await session.generate_report(args.tag)
    finally:
        await session.close()
    print(path)
    return 0


async def _inspect(args: argparse.Namespace) -> int:
    session = await TestSession.load(args.session, args.folder)
    try:
        for summary in await session.store.list_scopes():
            print(
                f"{summary.scope}: {summary.breadcrumbs} breadcrumbs, {summary.interactions} interactions, "
                f"{summary.account_snapshots} snapshots, {summary.events} events"
            )
        for breadcrumb in await session.store.list_breadcrumbs(session.scope):
            print(f"  [{breadcrumb.type}] {breadcrumb.name} = {breadcrumb.payload!r}")
    finally:
        await session.close()
    return 0


async def _destroy(args: argparse.Namespace) -> int:
    session = await TestSession.load(args.session, args.folder)
    await session.destroy()
    print(f"Session [{args.session}] destroyed")
    return 0


_COMMANDS = {
    "report": _report,
    "inspect": _inspect,
    "destroy": _destroy,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chain-test-session", description="Inspect the store of a test session")
    parser.add_argument("--log-level", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("report", "Generate the session report"),
        ("inspect", "Print scopes and breadcrumbs"),
        ("destroy", "Delete the session store"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("session", type=str, help="Session name")
        cmd.add_argument("--folder", type=str, default=".", help="Folder of <session>.session.json (or a child of it)")
        if name == "report":
            cmd.add_argument("--tag", type=str, default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_level = args.log_level or os.environ.get(LOG_LEVEL_ENV) or "INFO"
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO))

    try:
        return asyncio.run(_COMMANDS[args.command](args))
    except ChainTestSessionError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
