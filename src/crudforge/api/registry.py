# src/crudforge/api/registry.py
"""Operation name -> route entry table consulted on every request."""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from crudforge.core.errors import NotRegisteredError
from crudforge.core.pipeline import HandlerPipeline

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    Writers wait for active readers to drain; new readers wait while a
    writer is waiting, so registrations are not starved by traffic.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class RouteEntry(BaseModel):
    """A registered operation: where it is served and how it is handled."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    operation_name: str
    method: str
    path: str
    pipeline: HandlerPipeline
    allowed_fields: Optional[List[str]] = None
    description: str = ""
    # Extra (method, path) pairs served by the same entry
    aliases: Tuple[Tuple[str, str], ...] = ()

    def bindings(self) -> List[Tuple[str, str]]:
        """Every (method, path) this entry answers, primary first."""
        return [(self.method, self.path), *self.aliases]


def _normalise_method(method: str) -> str:
    method = method.upper()
    if method not in HTTP_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")
    return method


class RouteRegistry:
    """Thread-safe registry of :class:`RouteEntry` keyed by operation name.

    Registering an existing name replaces the entry as a whole: the new
    pipeline is used from the next dispatch on, nothing is merged.
    """

    def __init__(self):
        self._entries: Dict[str, RouteEntry] = {}
        self._lock = ReadWriteLock()

    def register(
        self,
        operation_name: str,
        method: str,
        path: str,
        pipeline: HandlerPipeline,
        allowed_fields: Optional[Sequence[str]] = None,
        description: str = "",
        aliases: Sequence[Tuple[str, str]] = (),
    ) -> RouteEntry:
        """Add or replace the entry for ``operation_name``.

        Args:
            operation_name: Unique name of the operation
            method: HTTP method of the primary binding
            path: Path relative to the resource prefix
            pipeline: Stages run for every request
            allowed_fields: Replaces the resource's query allow-list for this entry
            description: Human readable summary used by the docs
            aliases: Additional (method, path) bindings

        Returns:
            RouteEntry: The stored entry
        """
        entry = RouteEntry(
            operation_name=operation_name,
            method=_normalise_method(method),
            path=path,
            pipeline=pipeline,
            allowed_fields=list(allowed_fields) if allowed_fields is not None else None,
            description=description,
            aliases=tuple((_normalise_method(m), p) for m, p in aliases),
        )
        with self._lock.write():
            # A replaced entry keeps its original position
            self._entries[operation_name] = entry
        return entry

    def dispatch(self, operation_name: str) -> RouteEntry:
        with self._lock.read():
            entry = self._entries.get(operation_name)
        if entry is None:
            raise NotRegisteredError(operation_name)
        return entry

    def list(self) -> List[RouteEntry]:
        with self._lock.read():
            return list(self._entries.values())

    def unregister(self, operation_name: str) -> RouteEntry:
        with self._lock.write():
            entry = self._entries.pop(operation_name, None)
        if entry is None:
            raise NotRegisteredError(operation_name)
        return entry

    def __contains__(self, operation_name: object) -> bool:
        with self._lock.read():
            return operation_name in self._entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
