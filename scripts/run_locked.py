"""Run a command only if this node can take the named lock.

    python scripts/run_locked.py nightly-report -- python -m reports.nightly

Exits 75 (EX_TEMPFAIL) without running anything when another node holds the
lease. The lease ends at --at-most seconds even if the command hangs.
"""
from pathlib import Path
import argparse
import os
import subprocess
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

import structlog

from leaselock.config import settings
from leaselock.db import create_lock_table, get_engine
from leaselock.logging import setup_logging
from leaselock.provider.executor import SqlAlchemyExecutor
from leaselock.provider.lock_provider import SqlLockProvider
from leaselock.provider.models import LockConfiguration
from leaselock.utils import seconds

EX_TEMPFAIL = 75

log = structlog.get_logger()

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a command under a database lease lock.")
    parser.add_argument("name", help="lock name")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="command to run (after --)")
    parser.add_argument("--at-most", type=float, default=None, help="lease length in seconds")
    parser.add_argument("--at-least", type=float, default=0.0, help="minimum hold time in seconds")
    parser.add_argument("--db", default=settings.database(), help="SQLite path or SQLAlchemy URL")
    args = parser.parse_args(argv)
    command = args.command[1:] if args.command[:1] == ["--"] else args.command
    if not command:
        parser.error("no command given")

    setup_logging()
    engine = get_engine(args.db)
    configuration = settings.to_configuration(SqlAlchemyExecutor(engine))
    create_lock_table(engine, configuration)
    provider = SqlLockProvider(configuration)

    at_most = seconds(args.at_most) if args.at_most else settings.default_lock_at_most_for()
    lock = provider.lock(LockConfiguration(
        name=args.name,
        lock_at_most_for=at_most,
        lock_at_least_for=seconds(args.at_least),
    ))
    if lock is None:
        log.info("run_skipped", lock_name=args.name, reason="lock_held")
        return EX_TEMPFAIL

    with lock:
        log.info("run_started", lock_name=args.name, command=command, locked_by=configuration.locked_by_value)
        result = subprocess.run(command)
        log.info("run_finished", lock_name=args.name, returncode=result.returncode)
    return result.returncode

if __name__ == '__main__':
    sys.exit(main())
