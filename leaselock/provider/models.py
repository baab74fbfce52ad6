from datetime import datetime, timedelta
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils import as_utc, utc_now

class LockConfiguration(BaseModel):
    """One lock attempt: which lock, and how long the lease may last."""
    model_config = ConfigDict(frozen=True)
    name: str
    lock_at_most_for: timedelta
    lock_at_least_for: timedelta = timedelta(0)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, value: str):
        if not value or not value.strip():
            raise ValueError("lock name can not be empty")
        return value

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime):
        return as_utc(value)

    @model_validator(mode="after")
    def _durations(self):
        if self.lock_at_most_for <= timedelta(0):
            raise ValueError("lock_at_most_for must be positive")
        if self.lock_at_least_for < timedelta(0):
            raise ValueError("lock_at_least_for can not be negative")
        if self.lock_at_least_for > self.lock_at_most_for:
            raise ValueError("lock_at_least_for is longer than lock_at_most_for")
        return self

    @property
    def lock_at_most_until(self) -> datetime:
        return self.created_at + self.lock_at_most_for

    @property
    def lock_at_least_until(self) -> datetime:
        return self.created_at + self.lock_at_least_for

    @property
    def unlock_time(self) -> datetime:
        # Releasing early still honours the minimum hold time.
        return max(self.lock_at_least_until, utc_now())

    def renewed(self, lock_at_most_for: timedelta, lock_at_least_for: timedelta = timedelta(0)) -> "LockConfiguration":
        return LockConfiguration(
            name=self.name,
            lock_at_most_for=lock_at_most_for,
            lock_at_least_for=lock_at_least_for,
        )
