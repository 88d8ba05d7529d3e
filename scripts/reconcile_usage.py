#!/usr/bin/env python3
"""
Recompute every user's `used_storage` from the sizes of the files they own.

Usage:
  # use DATABASE_URL env (or .env)
  python scripts/reconcile_usage.py

  # or pass as argument, and only report without writing
  python scripts/reconcile_usage.py --db "postgresql://..." --dry-run

Be careful when running against production DB; recommended to backup DB first.
"""
import argparse
import logging
import sys

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from storage_manager.config import DATABASE_URL
from storage_manager.database import make_engine
from storage_manager.models import File, User
from storage_manager.quota import reconcile_usage

logger = logging.getLogger("reconcile_usage")


def main():
    p = argparse.ArgumentParser()
    p.add_argument('--db', help='DATABASE_URL override')
    p.add_argument('--dry-run', action='store_true', help='only print the drift, do not write')
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    engine = make_engine((args.db or DATABASE_URL).strip())
    session = sessionmaker(bind=engine)()
    try:
        user_ids = session.scalars(select(User.id).order_by(User.id)).all()
        logger.info("Checking %d users", len(user_ids))
        for uid in user_ids:
            if args.dry_run:
                recorded = session.scalar(select(User.used_storage).where(User.id == uid))
                actual = session.scalar(
                    select(func.coalesce(func.sum(File.size), 0.0)).where(File.owner_id == uid)
                )
                print(f"user={uid} recorded={recorded:.6f}GB actual={actual:.6f}GB")
            else:
                actual = reconcile_usage(session, uid)
                print(f"user={uid} used_storage={actual:.6f}GB")
    except Exception as e:
        logger.error("Reconciliation failed: %s", e)
        sys.exit(1)
    finally:
        session.close()
        engine.dispose()


if __name__ == '__main__':
    main()
