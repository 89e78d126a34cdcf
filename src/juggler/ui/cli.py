"""Command-line interface router for juggler."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from juggler.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from juggler.constants import OP_AFTER_SAVE, OP_BEFORE_SAVE, OP_QUERY
from juggler.datasource import DataSource
from juggler.hooks.context import snapshot_context
from juggler.observability import NotificationRecord, setup_logging, shutdown_logging


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="juggler",
        description=(
            "juggler: observer hooks around model persistence.\n\n"
            "Common workflows:\n"
            "  juggler config              Show the effective configuration\n"
            "  juggler demo                Run a sample model through its hooks\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a juggler TOML config (default: ./juggler.toml if present).",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config value, e.g. --set dao.bulk_concurrency=4 (repeatable).",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Show the effective configuration"
    )
    config_parser.set_defaults(handler=_cmd_config)

    demo_parser = subparsers.add_parser(
        "demo",
        parents=[common],
        help="Create, find, and upsert a sample model and print each notification",
    )
    demo_parser.set_defaults(handler=_cmd_demo)
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    if args.json:
        print(dump_effective_config(config))
        return 0
    print(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


def _cmd_demo(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    setup_logging(config["observability"])
    try:
        notifications, snapshots = asyncio.run(_run_demo(config))
    finally:
        shutdown_logging()

    if args.json:
        _emit_json(
            {
                "command": "demo",
                "notifications": [
                    {
                        "model": item.model_name,
                        "observers": item.observer_count,
                        "operation": item.operation,
                        "sequence": item.sequence,
                    }
                    for item in notifications
                ],
                "contexts": snapshots,
            }
        )
        return 0

    for item in notifications:
        line = f"{item.sequence:>3}  {item.model_name:<10} {item.operation:<14}"
        print(f"{line} {item.observer_count} observer(s)")
    return 0


async def _run_demo(
    config: Mapping[str, object],
) -> tuple[list[NotificationRecord], list[object]]:
    datasource = DataSource(settings=config)
    note = datasource.create_model("Note", {"title": {"type": "string", "required": True}})
    snapshots: list[object] = []

    async def remember(ctx: object) -> None:
        snapshots.append(snapshot_context(ctx))

    for operation in (OP_QUERY, OP_BEFORE_SAVE, OP_AFTER_SAVE):
        note.observe(operation, remember)

    seen: list[NotificationRecord] = []
    trace = datasource.trace
    token = trace.subscribe(seen.append) if trace is not None else None
    try:
        first = await note.create({"title": "first"})
        await note.find_or_create({"where": {"title": "first"}}, {"title": "first"})
        await note.update_or_create({"id": first.get_id(), "title": "renamed"})
        await note.find()
    finally:
        if trace is not None and token is not None:
            trace.unsubscribe(token)
    return seen, snapshots


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, object]:
    overrides = _parse_overrides(getattr(args, "overrides", None) or [])
    try:
        return load_config(getattr(args, "config_path", None), cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_overrides(items: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise CLIError(f"invalid --set value {item!r}; expected KEY=VALUE", exit_code=2)
        overrides[key.strip()] = _parse_scalar(raw.strip())
    return overrides


def _parse_scalar(raw: str) -> object:
    # JSON literals cover booleans and numbers; anything else stays a string.
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["CLIError", "build_parser", "run_cli"]
