"""Translation of Supabase client errors into domain errors."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx
from postgrest.exceptions import APIError

from macro_tracker.domain.errors import DuplicateName, PersistenceFailed

UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str, name: str | None = None) -> Iterator[None]:
    """Raise ``PersistenceFailed`` for store failures during ``action``.

    Unique violations become ``DuplicateName`` when ``name`` is given.
    """
    try:
        yield
    except APIError as exc:
        if name is not None and exc.code == UNIQUE_VIOLATION:
            raise DuplicateName(name) from exc
        _logger.error("Supabase %s failed: code=%s %s", action, exc.code, exc.message)
        raise PersistenceFailed(f"Supabase {action} failed") from exc
    except httpx.HTTPError as exc:
        _logger.error("Supabase %s transport error: %s", action, exc)
        raise PersistenceFailed(f"Supabase {action} failed") from exc


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``ilike`` matches the literal text."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
