"""
CLI helper to bulk-load recipes from a JSON file into the recipe store.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from recipebox.config import get_settings
from recipebox.db import PostgresDbClient
from recipebox.recipes import import_recipes


def main() -> int:
    parser = argparse.ArgumentParser(description="Import recipes from a JSON file")
    parser.add_argument(
        "path",
        type=Path,
        help="JSON file holding a list of recipe objects",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        print("❌ No database configured: set DATABASE_URL or pass --database-url")
        return 2

    try:
        payloads = json.loads(args.path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"❌ Could not read {args.path}: {e}")
        return 1
    if not isinstance(payloads, list):
        print(f"❌ {args.path} must contain a JSON list")
        return 1

    db = PostgresDbClient(database_url)
    created, skipped = import_recipes(db, payloads)
    print(f"✅ Imported {len(created)} recipe(s).")
    if skipped:
        print(f"   Skipped {skipped} entry(ies) without a name, title, or recipeName.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
