from __future__ import annotations

"""Environment doctor for db2rest.

This script performs a few fast checks before talking to a gateway:
- Validate that connection settings and credentials are configured.
- Warn about plain-http or unverified TLS connections.
- Check that the gateway's services endpoint answers.

Usage:
    python script/doctor.py --timeout-seconds 5
"""

import argparse
import json
import sys
from typing import Sequence

from loguru import logger
from rich.console import Console
from rich.table import Table
from rich.text import Text

from db2rest.config import get_settings
from db2rest.preflight import (
    CheckResult,
    Status,
    check_connection_settings,
    check_credentials,
    check_gateway_reachable,
    check_transport_security,
)
from db2rest.profile import apply_profile, load_profile

console = Console()
log = logger.bind(module="script.doctor")


def _status_text(status: Status) -> Text:
    styles = {"ok": "bold green", "warn": "bold yellow", "fail": "bold red"}
    return Text(status.upper(), style=styles.get(status, "bold"))


def _render_table(results: Sequence[CheckResult]) -> None:
    table = Table(title="db2rest doctor", show_lines=False)
    table.add_column("Check", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Details")
    for item in results:
        table.add_row(item.name, _status_text(item.status), item.details)
    console.print(table)


def _summarize(results: Sequence[CheckResult]) -> tuple[int, int, int]:
    ok = sum(1 for r in results if r.status == "ok")
    warn = sum(1 for r in results if r.status == "warn")
    fail = sum(1 for r in results if r.status == "fail")
    return ok, warn, fail


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run environment checks for db2rest.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=5.0,
        help="Network timeout used for the gateway probe.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the gateway probe.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as failures (non-zero exit code).",
    )
    parser.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print results as JSON (useful for CI).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
    except Exception as exc:  # pragma: no cover
        console.print(
            "[bold red]Failed to load settings[/] "
            f"reason={exc}. Ensure your environment variables are valid.",
        )
        log.exception("Settings load failed")
        return 1
    settings = apply_profile(settings, load_profile(settings.profile_path))

    timeout = float(max(0.2, args.timeout_seconds))

    results: list[CheckResult] = [
        check_connection_settings(settings),
        check_credentials(settings),
        check_transport_security(settings),
    ]
    if not args.offline and results[0].status == "ok":
        results.append(check_gateway_reachable(settings, timeout_seconds=timeout))

    if args.json_output:
        payload = [{"name": r.name, "status": r.status, "details": r.details} for r in results]
        console.print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        _render_table(results)

    ok, warn, fail = _summarize(results)
    summary = f"ok={ok} warn={warn} fail={fail}"
    if fail:
        console.print(f"[bold red]Doctor failed[/] {summary}")
        return 1
    if warn and args.strict:
        console.print(f"[bold yellow]Doctor warnings (strict)[/] {summary}")
        return 2
    console.print(f"[bold green]Doctor passed[/] {summary}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
