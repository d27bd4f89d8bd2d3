from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import UTC, datetime

from meet_cli.auth import Authenticator
from meet_cli.calendar import CalendarClient
from meet_cli.config import SCOPES, ensure_config_dir, get_oauth_port, load_application_secret
from meet_cli.errors import MeetError
from meet_cli.logging_utils import configure_logging, get_logger
from meet_cli.summary import OutputMode, summarize
from meet_cli.token_store import TokenStore, scope_key

LOGGER = get_logger("meet.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meet",
        description="Show how long until your next Google Calendar meeting.",
    )
    parser.add_argument(
        "-t",
        "--time",
        action="store_true",
        help="Print only the time until the next meeting.",
    )
    parser.add_argument(
        "-j",
        "--join",
        action="store_true",
        help="Include the conferencing join link when the meeting has one.",
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Delete the stored Google token and exit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log progress to stderr.",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    mode = OutputMode.from_flags(time_only=args.time, join=args.join)
    store = TokenStore(ensure_config_dir())

    if args.logout:
        store.set(scope_key(SCOPES), None)
        print("Signed out. The stored Google token was removed.")
        return 0

    authenticator = Authenticator(
        secret=load_application_secret(),
        store=store,
        scopes=SCOPES,
        port=get_oauth_port(),
    )
    credentials = authenticator.credentials()

    now = datetime.now(UTC)
    client = CalendarClient(credentials, on_token_refresh=authenticator.save_credentials)
    events = client.list_upcoming(now)
    print(summarize(events, now, mode))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("INFO" if args.verbose else None)

    try:
        return run(args)
    except MeetError as exc:
        LOGGER.debug("Run failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
