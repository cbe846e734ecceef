"""In-memory test doubles for the cache backend and SQLAlchemy sessions."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from academy.domain.exceptions import CacheUnavailableException


class InMemoryCache:
    """CacheProtocol implementation backed by dicts.

    Set ``available = False`` to mimic a disconnected backend, or ``fail_with``
    to make every operation raise (e.g. CacheUnavailableException). ``calls``
    records operation names in order.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.indexes: dict[str, set[str]] = {}
        self.available = True
        self.fail_with: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if self.fail_with is not None:
            raise self.fail_with

    def is_available(self) -> bool:
        return self.available

    async def get(self, key: str) -> Any | None:
        self._record("get", key)
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self._record("set", key)
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> bool:
        self._record("delete", key)
        self.data.pop(key, None)
        self.indexes.pop(key, None)
        return True

    async def delete_many(self, keys: list[str]) -> int:
        self._record("delete_many", ",".join(keys))
        deleted = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def scan_keys(self, prefix: str) -> list[str]:
        self._record("scan", prefix)
        return sorted(k for k in self.data if k.startswith(prefix))

    async def add_to_index(self, index: str, member: str, ttl: int) -> None:
        self._record("add_to_index", index)
        self.indexes.setdefault(index, set()).add(member)
        self.ttls[index] = ttl

    async def index_members(self, index: str) -> list[str]:
        self._record("index_members", index)
        return sorted(self.indexes.get(index, set()))


class UnavailableCache(InMemoryCache):
    """Backend that reports itself available but fails every call."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_with = CacheUnavailableException("get")


class FakeSession:
    """Minimal AsyncSession stand-in: info dict and a begin() that can fail."""

    def __init__(self) -> None:
        self.info: dict[str, Any] = {}
        self.committed = False
        self.rolled_back = False

    @asynccontextmanager
    async def begin(self):
        try:
            yield self
        except BaseException:
            self.rolled_back = True
            raise
        self.committed = True

    async def __aenter__(self) -> FakeSession:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class FakeSessionFactory:
    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession()
        self.sessions.append(session)
        return session
