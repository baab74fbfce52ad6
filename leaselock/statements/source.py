from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..utils import encode_timestamp, utc_now

@dataclass(frozen=True)
class TimeSource:
    """Where "now" comes from inside generated SQL.

    Client-time sources bind the caller's clock as ``:now``. Server-time
    sources embed the database's own clock expression and bind nothing.
    """
    key: str
    now_sql: str = ":now"
    binds_now: bool = True
    upsert_on_insert: bool = False

CLIENT_TIME = TimeSource("client")
# ON CONFLICT keeps a held lock from surfacing as a failed INSERT.
POSTGRES_CLIENT_TIME = TimeSource("postgres_client", upsert_on_insert=True)

def server_time(key: str, now_sql: str) -> TimeSource:
    return TimeSource(key, now_sql=now_sql, binds_now=False)

class StatementsSource:
    def __init__(self, configuration, time_source: TimeSource = CLIENT_TIME):
        self.configuration = configuration
        self.time_source = time_source

    def __repr__(self):
        return f"StatementsSource(table={self.table_name!r}, time_source={self.time_source.key!r})"

    # names

    @property
    def table_name(self) -> str:
        return self.configuration.table_name

    @property
    def name_column(self) -> str:
        return self.configuration.column_names.name

    @property
    def lock_until_column(self) -> str:
        return self.configuration.column_names.lock_until

    @property
    def locked_at_column(self) -> str:
        return self.configuration.column_names.locked_at

    @property
    def locked_by_column(self) -> str:
        return self.configuration.column_names.locked_by

    # statements

    def insert_statement(self) -> str:
        now = self.time_source.now_sql
        sql = (
            f"INSERT INTO {self.table_name}({self.name_column}, {self.lock_until_column}, "
            f"{self.locked_at_column}, {self.locked_by_column}) "
            f"VALUES(:name, :lock_until, {now}, :locked_by)"
        )
        if self.time_source.upsert_on_insert:
            sql += (
                f" ON CONFLICT ({self.name_column}) DO UPDATE SET "
                f"{self.lock_until_column} = :lock_until, {self.locked_at_column} = {now}, "
                f"{self.locked_by_column} = :locked_by "
                f"WHERE {self.table_name}.{self.lock_until_column} <= {now}"
            )
        return sql

    def update_statement(self) -> str:
        now = self.time_source.now_sql
        return (
            f"UPDATE {self.table_name} SET {self.lock_until_column} = :lock_until, "
            f"{self.locked_at_column} = {now}, {self.locked_by_column} = :locked_by "
            f"WHERE {self.name_column} = :name AND {self.lock_until_column} <= {now}"
        )

    def extend_statement(self) -> str:
        return (
            f"UPDATE {self.table_name} SET {self.lock_until_column} = :lock_until "
            f"WHERE {self.name_column} = :name AND {self.locked_by_column} = :locked_by "
            f"AND {self.lock_until_column} > {self.time_source.now_sql}"
        )

    def unlock_statement(self) -> str:
        return (
            f"UPDATE {self.table_name} SET {self.lock_until_column} = :unlock_time "
            f"WHERE {self.name_column} = :name"
        )

    # parameters

    def timestamp(self, instant):
        return encode_timestamp(instant, self.configuration.time_zone)

    def params(self, lock_configuration) -> dict[str, Any]:
        params = {
            "name": lock_configuration.name,
            "lock_until": self.timestamp(lock_configuration.lock_at_most_until),
            "locked_by": self.configuration.locked_by_value,
            "unlock_time": self.timestamp(lock_configuration.unlock_time),
        }
        if self.time_source.binds_now:
            params["now"] = self.timestamp(utc_now())
        return params
