"""Apply (or roll back) the tax reference data migrations using yoyo-migrations.

Usage:
    # Apply pending migrations
    python scripts/migrate.py

    # Apply, then load the bundled reference data
    python scripts/migrate.py --seed

    # Roll back every applied migration
    python scripts/migrate.py --rollback
"""

import argparse
import logging
import sys
from pathlib import Path

from yoyo import get_backend, read_migrations

# Add project root to path so config is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage tax reference data migrations")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--seed", action="store_true", help="Seed bundled reference data after migrating")
    group.add_argument("--rollback", action="store_true", help="Roll back all applied migrations")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    migrations_dir = str(Path(__file__).resolve().parent.parent / "migrations")

    logger.info("Connecting to database...")
    backend = get_backend(settings.database_url_sync)
    migrations = read_migrations(migrations_dir)

    with backend.lock():
        if args.rollback:
            to_rollback = backend.to_rollback(migrations)
            logger.info("Rolling back %d migration(s)...", len(to_rollback))
            backend.rollback_migrations(to_rollback)
            return

        to_apply = backend.to_apply(migrations)
        if to_apply:
            logger.info("Applying %d migration(s)...", len(to_apply))
            backend.apply_migrations(to_apply)
        else:
            logger.info("No pending migrations.")

    if args.seed:
        from scripts.seed_tax_rules import main as seed

        seed()


if __name__ == "__main__":
    main()
