from pathlib import Path
import argparse
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from leaselock.config import settings
from leaselock.db import fetch_lock_rows, get_engine
from leaselock.provider.executor import SqlAlchemyExecutor
from leaselock.utils import to_local_datetime_iso, utc_now

def main(argv=None):
    parser = argparse.ArgumentParser(description="List lock rows and whether each lease is held.")
    parser.add_argument("--db", default=settings.database(), help="SQLite path or SQLAlchemy URL")
    parser.add_argument("--held-only", action="store_true", help="only show locks with a valid lease")
    args = parser.parse_args(argv)

    engine = get_engine(args.db)
    configuration = settings.to_configuration(SqlAlchemyExecutor(engine))
    now = utc_now()
    rows = fetch_lock_rows(engine, configuration)
    shown = 0
    for row in rows:
        held = row["lock_until"] is not None and row["lock_until"] > now
        if args.held_only and not held:
            continue
        shown += 1
        print(
            f"{row['name']:<32} {'HELD' if held else 'free':<5} "
            f"until={to_local_datetime_iso(row['lock_until'], settings.time_zone)} "
            f"at={to_local_datetime_iso(row['locked_at'], settings.time_zone)} "
            f"by={row['locked_by']}"
        )
    print(f"{shown} of {len(rows)} lock(s)")

if __name__ == '__main__':
    main()
