import socket
from datetime import timedelta
from pathlib import Path
from typing import Any
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils import resolve_tz, seconds

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

DEFAULT_TABLE_NAME = "shedlock"

def default_locked_by() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"

def _require_name(value: str, what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{what} must not be empty")
    return value

class ColumnNames(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str = "name"
    lock_until: str = "lock_until"
    locked_at: str = "locked_at"
    locked_by: str = "locked_by"

    @field_validator("name", "lock_until", "locked_at", "locked_by")
    @classmethod
    def _not_empty(cls, value: str, info):
        return _require_name(value, f"column name '{info.field_name}'")

class Configuration(BaseModel):
    """Per-provider lock settings. Immutable once built."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    executor: Any
    table_name: str = DEFAULT_TABLE_NAME
    column_names: ColumnNames = Field(default_factory=ColumnNames)
    locked_by_value: str = Field(default_factory=default_locked_by)
    time_zone: str | None = None
    use_db_time: bool = False

    @field_validator("table_name")
    @classmethod
    def _table_not_empty(cls, value: str):
        return _require_name(value, "table name")

    @field_validator("locked_by_value")
    @classmethod
    def _locked_by_not_empty(cls, value: str):
        return _require_name(value, "locked_by value")

    @field_validator("time_zone")
    @classmethod
    def _known_zone(cls, value: str | None):
        if value is None or not value.strip():
            return None
        if resolve_tz(value.strip()) is None:
            raise ValueError(f"unknown time zone '{value}'")
        return value.strip()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, populate_by_name=True)
    db_path: str = Field(default="./data/locks.db", alias="LOCK_DB_PATH")
    db_url: str | None = Field(default=None, alias="LOCK_DB_URL")
    table_name: str = Field(default=DEFAULT_TABLE_NAME, alias="LOCK_TABLE_NAME")
    column_name: str = Field(default="name", alias="LOCK_COLUMN_NAME")
    column_lock_until: str = Field(default="lock_until", alias="LOCK_COLUMN_LOCK_UNTIL")
    column_locked_at: str = Field(default="locked_at", alias="LOCK_COLUMN_LOCKED_AT")
    column_locked_by: str = Field(default="locked_by", alias="LOCK_COLUMN_LOCKED_BY")
    locked_by: str | None = Field(default=None, alias="LOCK_LOCKED_BY")
    time_zone: str | None = Field(default=None, alias="LOCK_TIME_ZONE")
    use_db_time: bool = Field(default=False, alias="LOCK_USE_DB_TIME")
    default_at_most_for_seconds: float = Field(default=600.0, alias="LOCK_DEFAULT_AT_MOST_FOR")

    def database(self) -> str:
        return self.db_url or self.db_path

    def default_lock_at_most_for(self) -> timedelta:
        return seconds(self.default_at_most_for_seconds)

    def column_names(self) -> ColumnNames:
        return ColumnNames(
            name=self.column_name,
            lock_until=self.column_lock_until,
            locked_at=self.column_locked_at,
            locked_by=self.column_locked_by,
        )

    def to_configuration(self, executor) -> Configuration:
        return Configuration(
            executor=executor,
            table_name=self.table_name,
            column_names=self.column_names(),
            locked_by_value=self.locked_by or default_locked_by(),
            time_zone=self.time_zone,
            use_db_time=self.use_db_time,
        )

settings = Settings()
