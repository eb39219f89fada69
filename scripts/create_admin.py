"""Create (or re-activate) an admin account for first login.

Usage:

    python scripts/create_admin.py --email admin@example.com --username admin --password 'change-me-now'
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from projviz.core.exceptions import ConflictError  # noqa: E402
from projviz.core.security import hash_password  # noqa: E402
from projviz.db.session import SessionLocal  # noqa: E402
from projviz.models.enums import UserRole  # noqa: E402
from projviz.services.users import create_user, find_user_by_email  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin user.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default=None)
    parser.add_argument("--reset", action="store_true", help="reset password and role if the email exists")
    args = parser.parse_args()

    if len(args.password) < 8:
        print("[error] password must be at least 8 characters")
        return 2

    db = SessionLocal()
    try:
        existing = find_user_by_email(db, args.email)
        if existing and args.reset:
            existing.password_hash = hash_password(args.password)
            existing.role = UserRole.admin
            existing.is_active = True
            db.commit()
            print(f"[reset] {existing.email} (id={existing.id})")
            return 0
        try:
            user = create_user(
                db,
                username=args.username,
                email=args.email,
                password=args.password,
                full_name=args.full_name,
                role=UserRole.admin,
            )
        except ConflictError as exc:
            print(f"[exists] {exc.message}; pass --reset to overwrite")
            return 1
        print(f"[created] {user.email} (id={user.id})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
