import sqlite3
from pathlib import Path
from datetime import datetime, timezone
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .utils import as_utc

def _adapt_datetime(value: datetime) -> str:
    # SQLite has no timestamp type: store every instant as fixed-width UTC text
    # so that text order is time order, whichever zone the value was bound in.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(" ", timespec="microseconds")

def register_sqlite_adapters():
    sqlite3.register_adapter(datetime, _adapt_datetime)

def parse_sqlite_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)

def _as_instant(value) -> datetime | None:
    if isinstance(value, datetime):
        return as_utc(value)
    return parse_sqlite_timestamp(value)

def _enable_wal(dbapi_conn, _record):
    dbapi_conn.execute("PRAGMA journal_mode=WAL;")

def get_engine(db: str) -> Engine:
    """Engine for a database URL, or for a SQLite file path."""
    if "://" in db:
        return create_engine(db, pool_pre_ping=True)
    register_sqlite_adapters()
    if db == ":memory:":
        # A single shared connection, else each pooled connection is a new empty database.
        return create_engine(
            "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    Path(db).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db}", connect_args={"check_same_thread": False, "timeout": 30}
    )
    event.listen(engine, "connect", _enable_wal)
    return engine

LOCK_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
  {name} VARCHAR(64) NOT NULL PRIMARY KEY,
  {lock_until} TIMESTAMP NOT NULL,
  {locked_at} TIMESTAMP NOT NULL,
  {locked_by} VARCHAR(255) NOT NULL
)
"""

def lock_table_ddl(configuration) -> str:
    cols = configuration.column_names
    return LOCK_TABLE_DDL.format(
        table=configuration.table_name,
        name=cols.name,
        lock_until=cols.lock_until,
        locked_at=cols.locked_at,
        locked_by=cols.locked_by,
    )

def create_lock_table(engine: Engine, configuration):
    with engine.begin() as conn:
        conn.exec_driver_sql(lock_table_ddl(configuration))

def fetch_lock_rows(engine: Engine, configuration) -> list[dict]:
    cols = configuration.column_names
    with engine.connect() as conn:
        rows = conn.execute(text(
            f"SELECT {cols.name}, {cols.lock_until}, {cols.locked_at}, {cols.locked_by} "
            f"FROM {configuration.table_name} ORDER BY {cols.name}"
        )).all()
    return [
        {
            "name": row[0],
            "lock_until": _as_instant(row[1]),
            "locked_at": _as_instant(row[2]),
            "locked_by": row[3],
        }
        for row in rows
    ]
