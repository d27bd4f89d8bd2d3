"""Run the project's quality gates: Ruff, pyright, mypy and the pytest suite.

Each gate is a named ``Check``. ``--only`` narrows the run to some of them,
``--fix`` swaps in Ruff's fixing commands, and the exit status is non-zero
when any selected gate fails. Failed gate names are listed at the end so a
long run does not have to be scrolled back through.
"""

from __future__ import annotations

import argparse
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Check:
    name: str
    commands: tuple[tuple[str, ...], ...]
    fix_commands: tuple[tuple[str, ...], ...] = ()

    def commands_for(self, fix: bool) -> tuple[tuple[str, ...], ...]:
        if fix and self.fix_commands:
            return self.fix_commands
        return self.commands


CHECKS: tuple[Check, ...] = (
    Check(
        name="lint",
        commands=(("ruff", "check", "src", "tests"),),
        fix_commands=(
            ("ruff", "format", "src", "tests"),
            ("ruff", "check", "src", "tests", "--fix"),
        ),
    ),
    Check(name="pyright", commands=(("pyright", "src"),)),
    Check(name="mypy", commands=(("mypy", "src"),)),
    Check(name="tests", commands=(("pytest", "-q"),)),
)
CHECK_NAMES = [check.name for check in CHECKS]


def _run_command(command: Sequence[str]) -> int:
    print(f"\n$ {' '.join(command)}")
    try:
        return subprocess.run(command, check=False).returncode
    except FileNotFoundError:
        print(f"Command not found: {command[0]}")
        return 127


def select_checks(only: Sequence[str] | None = None) -> list[Check]:
    if not only:
        return list(CHECKS)
    wanted = set(only)
    return [check for check in CHECKS if check.name in wanted]


def run_checks(checks: Sequence[Check], fix: bool = False) -> list[str]:
    """Run every command of every check and return the names of failed checks."""
    failed: list[str] = []
    for check in checks:
        # Later commands in a check still run so one pass reports everything.
        results = [_run_command(command) for command in check.commands_for(fix)]
        if any(code != 0 for code in results):
            failed.append(check.name)
    return failed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meet-dev-check",
        description="Run meet-cli linting, static type checks and tests.",
    )
    parser.add_argument(
        "--only",
        action="append",
        choices=CHECK_NAMES,
        metavar="CHECK",
        help=f"Run only this check (repeatable). One of: {', '.join(CHECK_NAMES)}.",
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Let Ruff format and auto-fix instead of only reporting.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    failed = run_checks(select_checks(args.only), fix=args.fix)

    if failed:
        print(f"\nFailed checks: {', '.join(failed)}")
        return 1
    print("\nAll checks passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
