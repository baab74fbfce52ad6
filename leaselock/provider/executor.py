from __future__ import annotations

from typing import Any, Mapping, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db import register_sqlite_adapters
from ..errors import DuplicateKeyError, ProductProbeError

class SqlExecutor(Protocol):
    def database_product_name(self) -> str: ...

    def update(self, sql: str, params: Mapping[str, Any]) -> int: ...

# SQLAlchemy dialect name -> product name as the lock dialect tables know it.
DIALECT_PRODUCTS = {
    "sqlite": "SQLite",
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "mariadb": "MariaDB",
    "oracle": "Oracle",
    "mssql": "Microsoft SQL Server",
    "ibm_db_sa": "DB2",
    "db2": "DB2",
}

class SqlAlchemyExecutor:
    """SqlExecutor over a SQLAlchemy engine.

    Each statement runs in its own transaction. Unique-key violations become
    DuplicateKeyError, other errors propagate as SQLAlchemy raised them.
    """

    def __init__(self, engine: Engine, product_name: str | None = None):
        self.engine = engine
        self._product_name = product_name
        if engine.dialect.name == "sqlite":
            register_sqlite_adapters()

    def database_product_name(self) -> str:
        if self._product_name:
            return self._product_name
        dialect = self.engine.dialect.name
        product = DIALECT_PRODUCTS.get(dialect)
        if product == "MySQL":
            product = self._probe_mysql_flavour()
        if not product:
            raise ProductProbeError(f"unrecognised SQLAlchemy dialect '{dialect}'")
        self._product_name = product
        return product

    def _probe_mysql_flavour(self) -> str:
        # is_mariadb is only set once the dialect has seen the server version
        try:
            with self.engine.connect():
                pass
        except SQLAlchemyError as e:
            raise ProductProbeError(f"cannot read server version: {e}") from e
        return "MariaDB" if getattr(self.engine.dialect, "is_mariadb", False) else "MySQL"

    def update(self, sql: str, params: Mapping[str, Any]) -> int:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(sql), dict(params))
                count = result.rowcount
        except IntegrityError as e:
            raise DuplicateKeyError(str(e.orig)) from e
        return max(count, 0)
