from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import tomllib
from contextlib import suppress
from functools import partial
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from flowform.app import (
    apply_resource,
    destroy_resource,
    list_resources,
    lookup_resource,
    new_operation_context,
    refresh_resource,
)
from flowform.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from types import FrameType

    from flowform.app import OperationResult

log = logging.getLogger(__name__)

type Operation = Callable[..., Awaitable[OperationResult]]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile Flow resources")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log remote requests and polling progress",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for asynchronous remote work per resource (defaults to config)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Converge resources onto a TOML manifest")
    apply.add_argument(
        "manifest", type=Path, help="Manifest with one [kind.name] table per resource"
    )

    refresh = subparsers.add_parser("refresh", help="Re-read recorded resources")
    refresh.add_argument(
        "kind", nargs="?", help="Resource kind (all recorded resources if omitted)"
    )
    refresh.add_argument("name", nargs="?", help="Resource name")

    destroy = subparsers.add_parser("destroy", help="Delete a recorded resource")
    destroy.add_argument("kind", help="Resource kind")
    destroy.add_argument("name", help="Resource name")

    show = subparsers.add_parser("show", help="Print recorded resource states")
    show.add_argument("--kind", help="Only show resources of this kind")

    lookup = subparsers.add_parser("lookup", help="Find one existing remote entity")
    lookup.add_argument("kind", help="Resource kind")
    lookup.add_argument("criteria", nargs="*", metavar="KEY=VALUE", help="Attribute to match")
    lookup.add_argument(
        "--parent",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Parent attribute addressing the collection (e.g. server_id=7)",
    )

    args = parser.parse_args(list(argv))
    if args.command == "refresh" and (args.kind is None) != (args.name is None):
        parser.error("refresh takes both KIND and NAME or neither")
    return args


def _parse_value(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        return int(raw)
    except ValueError:
        return raw


def _parse_pairs(pairs: Sequence[str]) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        parsed[key.strip()] = _parse_value(value.strip())
    return parsed


def load_manifest(path: Path) -> list[tuple[str, str, dict[str, Any]]]:
    """Read ``[kind.name]`` tables in declaration order."""

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"Cannot read manifest {path}: {exc}") from exc

    resources: list[tuple[str, str, dict[str, Any]]] = []
    for kind, entries in document.items():
        if not isinstance(entries, dict):
            raise ValueError(f"Manifest entry {kind!r} must be a table of resources")
        for name, desired in entries.items():
            if not isinstance(desired, dict):
                raise ValueError(f"Resource {kind}.{name} must be a table")
            resources.append((kind, name, desired))
    return resources


async def _run(operation: Operation, timeout: float | None) -> OperationResult:
    ctx = new_operation_context(timeout)
    loop = asyncio.get_running_loop()
    # Ctrl+C stops polling instead of killing the loop mid-request
    with suppress(NotImplementedError):
        loop.add_signal_handler(SIGINT, ctx.cancel)
    try:
        return await operation(ctx=ctx)
    finally:
        with suppress(NotImplementedError):
            loop.remove_signal_handler(SIGINT)


def _report(label: str, result: OperationResult) -> bool:
    for diagnostic in result.diagnostics.warnings:
        log.warning("%s: %s: %s", label, diagnostic.summary, diagnostic.detail)
    for diagnostic in result.diagnostics.errors:
        log.error("%s: %s: %s", label, diagnostic.summary, diagnostic.detail)
    if result.ok and result.snapshot is not None:
        log.info("%s: id %s", label, result.snapshot.id)
    return result.ok


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))  # noqa: T201


def _apply_manifest(path: Path, timeout: float | None) -> bool:
    ok = True
    for kind, name, desired in load_manifest(path):
        operation = partial(apply_resource, kind, name, desired)
        result = asyncio.run(_run(operation, timeout))
        ok = _report(f"{kind}.{name}", result) and ok
    return ok


def _refresh(kind: str | None, name: str | None, timeout: float | None) -> bool:
    targets = (
        [(kind, name)]
        if kind is not None and name is not None
        else [(state.kind, state.name) for state in list_resources()]
    )
    ok = True
    for target_kind, target_name in targets:
        operation = partial(refresh_resource, target_kind, target_name)
        result = asyncio.run(_run(operation, timeout))
        ok = _report(f"{target_kind}.{target_name}", result) and ok
    return ok


def _dispatch(args: argparse.Namespace) -> bool:
    if args.command == "apply":
        return _apply_manifest(args.manifest, args.timeout)
    if args.command == "refresh":
        return _refresh(args.kind, args.name, args.timeout)
    if args.command == "destroy":
        result = asyncio.run(
            _run(partial(destroy_resource, args.kind, args.name), args.timeout)
        )
        return _report(f"{args.kind}.{args.name}", result)
    if args.command == "show":
        _print_json(
            [
                {
                    "kind": state.kind,
                    "name": state.name,
                    "id": state.resource_id,
                    "attributes": state.attributes,
                    "updated_at": state.updated_at.isoformat(),
                }
                for state in list_resources(args.kind)
            ]
        )
        return True
    if args.command == "lookup":
        criteria = _parse_pairs(args.criteria)
        parent = _parse_pairs(args.parent) or None
        result = asyncio.run(
            _run(partial(lookup_resource, args.kind, criteria, parent=parent), args.timeout)
        )
        if result.snapshot is not None:
            _print_json(result.snapshot.as_dict())
        return _report(args.kind, result)
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "apply":
            load_manifest(parsed_args.manifest)
        elif parsed_args.command == "lookup":
            _parse_pairs(parsed_args.criteria)
            _parse_pairs(parsed_args.parent)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        ok = _dispatch(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)
    if not ok:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) outside of a running operation."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
