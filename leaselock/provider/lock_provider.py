from __future__ import annotations

import threading
from datetime import timedelta
import structlog

from ..errors import DuplicateKeyError, LockReleasedError
from ..statements.dialects import create_statements_source
from .models import LockConfiguration

log = structlog.get_logger()

class SqlLockProvider:
    """Lease locks stored as rows of one lock table.

    ``lock`` never blocks: it returns a SqlLock or None when somebody else
    holds a valid lease. Polling and retrying is up to the caller.
    """

    def __init__(self, configuration):
        self.configuration = configuration
        self.executor = configuration.executor
        # Dialect problems under DB time must fail here, not on first lock().
        self.statements = create_statements_source(configuration)
        self._known_names: set[str] = set()
        self._known_lock = threading.Lock()

    def lock(self, lock_configuration: LockConfiguration) -> SqlLock | None:
        name = lock_configuration.name
        if not self._is_known(name):
            inserted = self._insert_record(lock_configuration)
            self._remember(name)
            if inserted:
                log.debug("lock_acquired", lock_name=name, via="insert",
                          lock_until=lock_configuration.lock_at_most_until.isoformat())
                return SqlLock(self, lock_configuration)
        if self._update_record(lock_configuration):
            log.debug("lock_acquired", lock_name=name, via="update",
                      lock_until=lock_configuration.lock_at_most_until.isoformat())
            return SqlLock(self, lock_configuration)
        log.debug("lock_not_acquired", lock_name=name)
        return None

    def _is_known(self, name: str) -> bool:
        with self._known_lock:
            return name in self._known_names

    def _remember(self, name: str):
        with self._known_lock:
            self._known_names.add(name)

    def _insert_record(self, lock_configuration: LockConfiguration) -> bool:
        try:
            rows = self.executor.update(
                self.statements.insert_statement(),
                self.statements.params(lock_configuration),
            )
        except DuplicateKeyError:
            return False
        return rows > 0

    def _update_record(self, lock_configuration: LockConfiguration) -> bool:
        rows = self.executor.update(
            self.statements.update_statement(),
            self.statements.params(lock_configuration),
        )
        return rows > 0

    def _extend(self, lock_configuration: LockConfiguration) -> bool:
        rows = self.executor.update(
            self.statements.extend_statement(),
            self.statements.params(lock_configuration),
        )
        return rows > 0

    def _unlock(self, lock_configuration: LockConfiguration):
        self.executor.update(
            self.statements.unlock_statement(),
            self.statements.params(lock_configuration),
        )

class SqlLock:
    """A held lease. Valid until unlocked or replaced by ``extend``."""

    def __init__(self, provider: SqlLockProvider, lock_configuration: LockConfiguration):
        self.provider = provider
        self.lock_configuration = lock_configuration
        self._valid = True

    @property
    def name(self) -> str:
        return self.lock_configuration.name

    @property
    def valid(self) -> bool:
        return self._valid

    def unlock(self):
        self._check_valid()
        self._valid = False
        self.provider._unlock(self.lock_configuration)
        log.debug("lock_released", lock_name=self.name)

    def extend(self, lock_at_most_for: timedelta, lock_at_least_for: timedelta = timedelta(0)) -> SqlLock | None:
        """Push the lease end to now + lock_at_most_for.

        Returns the new lock, or None when the lease had already expired or
        passed to another holder. Either way this lock is no longer usable.
        """
        self._check_valid()
        renewed = self.lock_configuration.renewed(lock_at_most_for, lock_at_least_for)
        self._valid = False
        if self.provider._extend(renewed):
            log.debug("lock_extended", lock_name=self.name,
                      lock_until=renewed.lock_at_most_until.isoformat())
            return SqlLock(self.provider, renewed)
        log.warning("lock_extend_failed", lock_name=self.name)
        return None

    def _check_valid(self):
        if not self._valid:
            raise LockReleasedError(f"lock '{self.name}' is already released")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        if self._valid:
            self.unlock()
