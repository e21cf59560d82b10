"""CLI tool for inspecting the snapshot file."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .config import get_settings

SECTIONS = ("users", "water", "sleep", "activity", "other")


def summarize(document: dict[str, Any]) -> dict[str, dict[str, int]]:
    """Count entries per section; user-keyed sections are broken down per user."""
    summary: dict[str, dict[str, int]] = {}

    users = document.get("users") or []
    summary["users"] = {"total": len(users)}

    for section in ("water", "sleep", "activity"):
        by_user = document.get(section) or {}
        summary[section] = {name: len(records) for name, records in by_user.items()}

    other = document.get("other") or {}
    summary["other"] = {
        f"{name}/{category}": len(records)
        for name, categories in other.items()
        for category, records in categories.items()
    }
    return summary


def inspect_snapshot(path: Path, as_json: bool = False) -> int:
    """Print a snapshot summary (or the raw document). Returns the exit code."""
    if not path.exists():
        print(f"Snapshot not found: {path}", file=sys.stderr)
        return 1

    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        print(f"Cannot read snapshot {path}: {e}", file=sys.stderr)
        return 1

    if not isinstance(document, dict):
        print(f"Snapshot {path} is not a JSON object", file=sys.stderr)
        return 1

    if as_json:
        # Passwords stay out of the dump
        users = [
            {k: v for k, v in user.items() if k != "password"}
            for user in document.get("users") or []
            if isinstance(user, dict)
        ]
        print(json.dumps({**document, "users": users}, indent=2, ensure_ascii=False))
        return 0

    try:
        summary = summarize(document)
    except (AttributeError, TypeError) as e:
        print(f"Snapshot {path} has an unexpected layout: {e}", file=sys.stderr)
        return 1

    print(f"Snapshot: {path}")
    for section in SECTIONS:
        counts = summary[section]
        total = sum(counts.values())
        print(f"\n{section}: {total}")
        if section == "users":
            continue
        for key, count in counts.items():
            print(f"  {key}: {count}")
    return 0


def snapshot_inspect() -> None:
    """CLI entry point for snapshot inspection.

    Usage:
        health-tracker-snapshot [--path data/storage.json] [--json]
    """
    parser = argparse.ArgumentParser(description="Summarize the health tracker snapshot file")
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Snapshot file (default: STORAGE_SNAPSHOT_PATH or data/storage.json)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the document itself, without passwords",
    )

    args = parser.parse_args()
    path = args.path or Path(get_settings().storage.snapshot_path)
    sys.exit(inspect_snapshot(path, as_json=args.json))
