from __future__ import annotations

from dataclasses import dataclass
import structlog

from ..errors import LockConfigurationError, ProductProbeError, UnsupportedDatabaseError
from .source import CLIENT_TIME, POSTGRES_CLIENT_TIME, StatementsSource, TimeSource, server_time

log = structlog.get_logger()

POSTGRES_SERVER_TIME = server_time("postgres_server", "timezone('utc', CURRENT_TIMESTAMP)")
MSSQL_SERVER_TIME = server_time("mssql_server", "SYSUTCDATETIME()")
ORACLE_SERVER_TIME = server_time("oracle_server", "SYS_EXTRACT_UTC(SYSTIMESTAMP)")
MYSQL_SERVER_TIME = server_time("mysql_server", "UTC_TIMESTAMP(3)")
HSQL_SERVER_TIME = server_time("hsql_server", "(CURRENT_TIMESTAMP AT TIME ZONE INTERVAL '0:00' HOUR TO MINUTE)")
H2_SERVER_TIME = server_time("h2_server", "CURRENT_TIMESTAMP AT TIME ZONE 'UTC'")
DB2_SERVER_TIME = server_time("db2_server", "(CURRENT TIMESTAMP - CURRENT TIMEZONE)")

# Product names as reported by the drivers (JDBC-style names).
SERVER_TIME_SOURCES: dict[str, TimeSource] = {
    "PostgreSQL": POSTGRES_SERVER_TIME,
    "Microsoft SQL Server": MSSQL_SERVER_TIME,
    "Oracle": ORACLE_SERVER_TIME,
    "MySQL": MYSQL_SERVER_TIME,
    "MariaDB": MYSQL_SERVER_TIME,
    "HSQL Database Engine": HSQL_SERVER_TIME,
    "H2": H2_SERVER_TIME,
}
# DB2 reports its platform too, e.g. "DB2/LINUXX8664".
SERVER_TIME_PREFIXES: tuple[tuple[str, TimeSource], ...] = (
    ("DB2", DB2_SERVER_TIME),
)

CLIENT_TIME_SOURCES: dict[str, TimeSource] = {
    "PostgreSQL": POSTGRES_CLIENT_TIME,
}

@dataclass(frozen=True)
class DetectedProduct:
    name: str

@dataclass(frozen=True)
class UnknownProduct:
    reason: str
    error: BaseException | None = None

def detect_product(executor) -> DetectedProduct | UnknownProduct:
    """Ask the executor for the product name.

    Only probe failures turn into UnknownProduct; other errors propagate.
    """
    try:
        name = executor.database_product_name()
    except (ProductProbeError, NotImplementedError) as e:
        return UnknownProduct(reason=str(e) or type(e).__name__, error=e)
    if not name:
        return UnknownProduct(reason="empty product name")
    return DetectedProduct(name=str(name).strip())

def server_time_source(product_name: str) -> TimeSource:
    source = SERVER_TIME_SOURCES.get(product_name)
    if source is not None:
        return source
    for prefix, prefixed in SERVER_TIME_PREFIXES:
        if product_name.startswith(prefix):
            return prefixed
    raise UnsupportedDatabaseError(product_name)

def client_time_source(product: DetectedProduct | UnknownProduct) -> TimeSource:
    if isinstance(product, DetectedProduct):
        return CLIENT_TIME_SOURCES.get(product.name, CLIENT_TIME)
    return CLIENT_TIME

def select_time_source(configuration) -> TimeSource:
    product = detect_product(configuration.executor)
    if not configuration.use_db_time:
        if isinstance(product, UnknownProduct):
            log.debug("db_product_unknown", reason=product.reason)
        return client_time_source(product)
    if isinstance(product, UnknownProduct):
        raise LockConfigurationError(
            f"Can not determine database product name, DB time can not be used: {product.reason}"
        ) from product.error
    return server_time_source(product.name)

def create_statements_source(configuration) -> StatementsSource:
    time_source = select_time_source(configuration)
    log.debug(
        "statements_source_selected",
        time_source=time_source.key,
        use_db_time=configuration.use_db_time,
        table=configuration.table_name,
    )
    return StatementsSource(configuration, time_source)
