"""One-off migration: JSON storage file -> SQL storage_entries table."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.core.config import get_settings
from kushl.repositories.storage import JsonFileStore, SQLStore


def migrate(source: Path) -> int:
    if not source.exists():
        raise SystemExit(f"File not found: {source}")
    json_store = JsonFileStore(source)
    sql_store = SQLStore()
    copied = 0
    for key in json_store.keys(get_settings().key_prefix):
        text = json_store.get_raw(key)
        if text is None:
            continue
        sql_store.set_raw(key, text)
        copied += 1
    return copied


def main() -> None:
    ap = argparse.ArgumentParser(description="Copy a JSON storage file into DATABASE_URL")
    ap.add_argument("--source", default=get_settings().storage_path, help="JSON storage file")
    args = ap.parse_args()
    copied = migrate(Path(args.source))
    print(f"Migration completed: {copied} key(s) copied.")


if __name__ == "__main__":
    main()
