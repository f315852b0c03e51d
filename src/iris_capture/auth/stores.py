"""
Template Store & Auth Log
=========================

Contracts for the secure storage collaborators, plus in-memory
implementations for tests and hosts without secure storage.

Interfaces:
    TemplateStore.store(template) / get() / delete()
    AuthLogSink.append(entry) / entries() / clear()

Design Rules:
    - One enrolled template at a time (store replaces)
    - Auth log is append-only from the pipeline's point of view,
      newest first, bounded
"""

import logging
from typing import List, Optional, Protocol

from iris_capture.config import settings
from iris_capture.models.auth import AuthLogEntry, IrisTemplate


logger = logging.getLogger(__name__)


class TemplateStore(Protocol):
    """Durable storage for the enrolled iris template."""

    def store(self, template: IrisTemplate) -> None:
        ...

    def get(self) -> Optional[IrisTemplate]:
        ...

    def delete(self) -> None:
        ...


class AuthLogSink(Protocol):
    """Append-only auth log."""

    def append(self, entry: AuthLogEntry) -> None:
        ...

    def entries(self) -> List[AuthLogEntry]:
        ...

    def clear(self) -> None:
        ...


class InMemoryTemplateStore:
    """Process-local template store."""

    def __init__(self) -> None:
        self._template: Optional[IrisTemplate] = None

    def store(self, template: IrisTemplate) -> None:
        self._template = template
        logger.info(f"Iris template stored: {template.template_id} (quality={template.quality:.2f})")

    def get(self) -> Optional[IrisTemplate]:
        return self._template

    def delete(self) -> None:
        self._template = None
        logger.info("Iris template deleted")


class InMemoryAuthLog:
    """
    Bounded, newest-first auth log.

    Attributes:
        max_entries: Entries retained; older ones are dropped
            (settings.auth.max_log_entries if None)
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is None:
            max_entries = settings.auth.max_log_entries
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: List[AuthLogEntry] = []

    def append(self, entry: AuthLogEntry) -> None:
        self._entries.insert(0, entry)
        del self._entries[self.max_entries:]

    def entries(self) -> List[AuthLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
