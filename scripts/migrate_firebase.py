"""
Run the Firebase -> Supabase migration from the command line.

Usage:
  python scripts/migrate_firebase.py --email admin@example.com
  (password is read from FIREBASE_ADMIN_PASSWORD or prompted)

Re-running against the same Firebase data creates duplicate users and
operations; run it once.
"""
from __future__ import annotations

import argparse
import getpass
import json
import logging
import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from dotenv import load_dotenv

from pegasus_admin import create_app
from pegasus_admin.routes.migration import build_migration_runner
from pegasus_admin.services.errors import PegasusError


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Migrate Firebase users and operations.")
    parser.add_argument("--email", required=True, help="Firebase admin email.")
    parser.add_argument("--db", help="Database URI override.")
    parser.add_argument(
        "--config",
        default=os.environ.get("FLASK_CONFIG") or "default",
        help="Config name: development|production|default",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    password = os.environ.get("FIREBASE_ADMIN_PASSWORD") or getpass.getpass(
        "Firebase admin password: "
    )

    app = create_app(args.config, db_uri_override=args.db)
    with app.app_context():
        try:
            runner = build_migration_runner(app.config["MIGRATION_CONFIG"])
            stats = runner.run(args.email, password)
        except PegasusError as e:
            print(f"Migration failed: {e}", file=sys.stderr)
            return 1

    print(json.dumps(stats.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
