"""
Apply or roll back PocketBase collection migrations.

Usage:
    python scripts/migrate_collections.py status
    python scripts/migrate_collections.py upgrade [--target REVISION]
    python scripts/migrate_collections.py downgrade [--steps N]

Requires POCKETBASE_ADMIN_EMAIL and POCKETBASE_ADMIN_PASSWORD.
Applied revisions are tracked in MIGRATION_STATE_FILE.
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from config import Config  # noqa: E402
from finwage.services.collection_migrations import MigrationError, MigrationRunner  # noqa: E402
from integrations.pocketbase.client import PocketBaseClient, PocketBaseError  # noqa: E402


def build_runner() -> MigrationRunner:
    if not (Config.POCKETBASE_ADMIN_EMAIL and Config.POCKETBASE_ADMIN_PASSWORD):
        raise SystemExit("POCKETBASE_ADMIN_EMAIL and POCKETBASE_ADMIN_PASSWORD must be set")
    client = PocketBaseClient(Config.POCKETBASE_URL, timeout=Config.POCKETBASE_TIMEOUT)
    client.authenticate_superuser(Config.POCKETBASE_ADMIN_EMAIL, Config.POCKETBASE_ADMIN_PASSWORD)
    return MigrationRunner(client, Config.MIGRATION_STATE_FILE)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="PocketBase collection migrations.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="List migrations and whether they are applied.")
    up = sub.add_parser("upgrade", help="Apply pending migrations.")
    up.add_argument("--target", help="Stop after this revision.")
    down = sub.add_parser("downgrade", help="Roll back applied migrations.")
    down.add_argument("--steps", type=int, default=1, help="How many migrations to roll back.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        runner = build_runner()
        if args.command == "status":
            for entry in runner.status():
                mark = "x" if entry["applied"] else " "
                print(f"[{mark}] {entry['revision']}  {entry['description']}")
        elif args.command == "upgrade":
            done = runner.upgrade(args.target)
            print(f"Applied {len(done)} migration(s): {', '.join(done) or '-'}")
        else:
            done = runner.downgrade(args.steps)
            print(f"Reverted {len(done)} migration(s): {', '.join(done) or '-'}")
    except (MigrationError, PocketBaseError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
