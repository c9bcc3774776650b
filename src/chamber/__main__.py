"""Entry point: python -m chamber <agent|command> <action> <name> [options]

- sources: Print where the entity is defined (JSON)
- create:  Create a new document (--scope user|project)
- update:  Apply --set key=value updates
- delete:  Remove the entity from every source
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from chamber.config import load_config
from chamber.errors import ChamberError


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_assignments(pairs: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into a field map. Values are JSON when they parse."""
    fields: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        try:
            fields[key] = json.loads(raw)
        except json.JSONDecodeError:
            fields[key] = raw
    return fields


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chamber", description=__doc__.splitlines()[0])
    parser.add_argument("kind", choices=["agent", "command"])
    parser.add_argument("action", choices=["sources", "create", "update", "delete"])
    parser.add_argument("name")
    parser.add_argument("--cwd", default=None, help="Project working directory")
    parser.add_argument("--scope", choices=["user", "project"], default=None)
    parser.add_argument("--set", dest="assignments", action="append", default=[],
                        metavar="KEY=VALUE")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = load_config()
    _setup_logging(config.log_level)

    from chamber.engine import get_manager

    manager = get_manager(args.kind, config)
    try:
        fields = _parse_assignments(args.assignments)
        if args.action == "sources":
            sources = manager.get_sources(args.name, args.cwd)
            print(json.dumps(sources.to_dict(), indent=2))
        elif args.action == "create":
            path = manager.create(args.name, fields, args.cwd, args.scope)
            print(path)
        elif args.action == "update":
            manager.update(args.name, fields, args.cwd)
        elif args.action == "delete":
            manager.delete(args.name, args.cwd)
    except (ChamberError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
