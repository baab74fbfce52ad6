import unittest

from leaselock.config import Configuration
from leaselock.db import get_engine
from leaselock.errors import LockConfigurationError, ProductProbeError, UnsupportedDatabaseError
from leaselock.provider.executor import SqlAlchemyExecutor
from leaselock.provider.lock_provider import SqlLockProvider
from leaselock.statements.dialects import (
    DB2_SERVER_TIME,
    DetectedProduct,
    MYSQL_SERVER_TIME,
    POSTGRES_SERVER_TIME,
    UnknownProduct,
    create_statements_source,
    detect_product,
)
from leaselock.statements.source import CLIENT_TIME, POSTGRES_CLIENT_TIME

class _ProductExecutor:
    def __init__(self, product=None, error=None):
        self.product = product
        self.error = error
        self.probes = 0

    def database_product_name(self):
        self.probes += 1
        if self.error is not None:
            raise self.error
        return self.product

    def update(self, sql, params):
        raise AssertionError("selection must not execute statements")

def _source(product=None, error=None, use_db_time=False):
    executor = _ProductExecutor(product, error)
    return create_statements_source(Configuration(executor=executor, use_db_time=use_db_time))

class DetectProductTests(unittest.TestCase):
    def test_detected(self):
        self.assertEqual(detect_product(_ProductExecutor("PostgreSQL")), DetectedProduct("PostgreSQL"))

    def test_probe_failure_is_unknown(self):
        result = detect_product(_ProductExecutor(error=ProductProbeError("no metadata")))
        self.assertIsInstance(result, UnknownProduct)
        self.assertEqual(result.reason, "no metadata")

    def test_not_implemented_is_unknown(self):
        self.assertIsInstance(detect_product(_ProductExecutor(error=NotImplementedError())), UnknownProduct)

    def test_empty_name_is_unknown(self):
        self.assertIsInstance(detect_product(_ProductExecutor("")), UnknownProduct)

    def test_unrelated_errors_propagate(self):
        with self.assertRaises(KeyError):
            detect_product(_ProductExecutor(error=KeyError("bug")))

class ClientTimeSelectionTests(unittest.TestCase):
    def test_postgres_gets_upsert_variant(self):
        self.assertIs(_source("PostgreSQL").time_source, POSTGRES_CLIENT_TIME)

    def test_other_products_get_generic_variant(self):
        for product in ("MySQL", "Oracle", "SQLite", "Something Else"):
            self.assertIs(_source(product).time_source, CLIENT_TIME, product)

    def test_probe_failure_degrades_to_generic(self):
        source = _source(error=ProductProbeError("connection refused"))
        self.assertIs(source.time_source, CLIENT_TIME)
        self.assertIn(":now", source.update_statement())

class ServerTimeSelectionTests(unittest.TestCase):
    def test_postgres_and_mysql_differ(self):
        pg = _source("PostgreSQL", use_db_time=True)
        mysql = _source("MySQL", use_db_time=True)
        mariadb = _source("MariaDB", use_db_time=True)
        self.assertIs(pg.time_source, POSTGRES_SERVER_TIME)
        self.assertNotEqual(pg.time_source.now_sql, mysql.time_source.now_sql)
        self.assertEqual(mysql.time_source.now_sql, mariadb.time_source.now_sql)
        self.assertIs(mariadb.time_source, MYSQL_SERVER_TIME)
        self.assertIn("UTC_TIMESTAMP(3)", mysql.update_statement())

    def test_known_products(self):
        expected = {
            "Microsoft SQL Server": "SYSUTCDATETIME()",
            "Oracle": "SYS_EXTRACT_UTC(SYSTIMESTAMP)",
            "HSQL Database Engine": "(CURRENT_TIMESTAMP AT TIME ZONE INTERVAL '0:00' HOUR TO MINUTE)",
            "H2": "CURRENT_TIMESTAMP AT TIME ZONE 'UTC'",
        }
        for product, now_sql in expected.items():
            source = _source(product, use_db_time=True)
            self.assertEqual(source.time_source.now_sql, now_sql, product)
            self.assertFalse(source.time_source.binds_now)

    def test_db2_matches_by_prefix(self):
        self.assertIs(_source("DB2/LINUXX8664", use_db_time=True).time_source, DB2_SERVER_TIME)

    def test_unsupported_product_fails(self):
        with self.assertRaises(UnsupportedDatabaseError) as ctx:
            _source("Informix Dynamic Server", use_db_time=True)
        self.assertEqual(ctx.exception.product, "Informix Dynamic Server")
        self.assertIn("Informix Dynamic Server", str(ctx.exception))
        self.assertIsInstance(ctx.exception, LockConfigurationError)

    def test_probe_failure_is_fatal(self):
        probe_error = ProductProbeError("connection refused")
        with self.assertRaises(LockConfigurationError) as ctx:
            _source(error=probe_error, use_db_time=True)
        self.assertIs(ctx.exception.__cause__, probe_error)

    def test_sqlite_has_no_db_time(self):
        executor = SqlAlchemyExecutor(get_engine(":memory:"))
        with self.assertRaises(UnsupportedDatabaseError):
            SqlLockProvider(Configuration(executor=executor, use_db_time=True))

class SelectOnceTests(unittest.TestCase):
    def test_provider_probes_once(self):
        executor = _ProductExecutor("PostgreSQL")
        provider = SqlLockProvider(Configuration(executor=executor))
        provider.statements.insert_statement()
        provider.statements.update_statement()
        self.assertEqual(executor.probes, 1)

if __name__ == "__main__":
    unittest.main()
