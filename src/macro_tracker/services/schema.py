"""One-time schema provisioning for support tables."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

from macro_tracker.domain.errors import PersistenceFailed

_logger = logging.getLogger(__name__)


class SchemaRepository(Protocol):
    """Repository able to create its own backing table."""

    def ensure_schema(self) -> None:
        """Create the backing table if it does not exist."""


@dataclass
class SchemaProvisioner:
    """Ensures support tables exist, once per process.

    Startup calls ``ensure`` first; services call it again before touching the
    table, so a failed startup attempt is retried on first use.
    """

    repository: SchemaRepository
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _done: bool = field(default=False, init=False)

    def ensure(self) -> bool:
        """Provision the schema; return False if it could not be verified."""
        if self._done:
            return True
        with self._lock:
            if self._done:
                return True
            try:
                self.repository.ensure_schema()
            except PersistenceFailed:
                _logger.exception("Schema provisioning failed")
                return False
            self._done = True
            _logger.info("Schema provisioned")
            return True

    @property
    def is_provisioned(self) -> bool:
        """Return True once provisioning has succeeded."""
        return self._done
