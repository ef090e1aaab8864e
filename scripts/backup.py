#!/usr/bin/env python3
"""
Dump or restore every kushl_* key of the configured store.

Usage:
  python scripts/backup.py dump [--out backup.json]
  python scripts/backup.py restore backup.json
"""
from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.services.backup_service import backup_data, restore_data


def main() -> None:
    ap = argparse.ArgumentParser(description="Backup / restore KushL data")
    sub = ap.add_subparsers(dest="command", required=True)
    dump = sub.add_parser("dump", help="Write a backup file")
    dump.add_argument("--out", help="Output path (default: kushl-backup-<date>.json)")
    restore = sub.add_parser("restore", help="Load a backup file")
    restore.add_argument("path", help="Backup file to restore")
    args = ap.parse_args()

    if args.command == "dump":
        out = Path(args.out or f"kushl-backup-{datetime.now(timezone.utc):%Y-%m-%d}.json")
        payload = backup_data()
        out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"OK: {len(payload['data']) + len(payload['raw'])} key(s) written to {out}")
        return

    source = Path(args.path)
    if not source.exists():
        raise SystemExit(f"File not found: {source}")
    ok, message = restore_data(json.loads(source.read_text(encoding="utf-8")))
    if not ok:
        raise SystemExit(message)
    print(f"OK: {message}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
