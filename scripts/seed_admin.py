#!/usr/bin/env python3
"""
Create an admin account in the configured store.

Usage:
  python scripts/seed_admin.py --email admin@kushl.com --name "Admin User" \
      --whatsapp +919876543210 [--level super|manager|support] [--password ...]
"""
from __future__ import annotations

import argparse
import secrets
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.core.security import hash_password
from kushl.domain.constants import ADMIN_LEVEL_PERMISSIONS
from kushl.services import user_service


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a KushL admin user")
    ap.add_argument("--email", required=True, help="Admin e-mail (must not exist yet)")
    ap.add_argument("--name", default="Admin User", help="Full name")
    ap.add_argument("--whatsapp", default="", help="WhatsApp number")
    ap.add_argument("--level", default="super", choices=sorted(ADMIN_LEVEL_PERMISSIONS), help="Admin level")
    ap.add_argument("--password", help="Password (default: random, printed once)")
    args = ap.parse_args()

    email = (args.email or "").strip()
    if not email:
        raise SystemExit("Invalid e-mail")
    if user_service.find_user_by_email(email):
        raise SystemExit(f"User '{email}' already exists")

    password = (args.password or "").strip() or secrets.token_urlsafe(12)
    admin = user_service.create_admin_user(args.name, email, args.whatsapp, args.level)
    admin["password"] = hash_password(password)
    user_service.add_user(admin)
    print("OK: admin created")
    print(f"  ID: {admin['id']}")
    print(f"  Level: {admin['adminLevel']}")
    if not args.password:
        print(f"  Password: {password}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
