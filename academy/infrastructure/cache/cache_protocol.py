"""Cache protocol for the cache-aside layer (DIP). Redis implementation in redis_cache.py."""

from typing import Any, Protocol


class CacheProtocol(Protocol):
    """Protocol for cache backends (e.g. Redis).

    Operations raise CacheUnavailableException on timeout or lost connection;
    other backend errors are logged by the implementation and reported as a
    miss / False.
    """

    def is_available(self) -> bool:
        """Return True if cache is connected and usable."""
        ...

    async def get(self, key: str) -> Any:
        """Return cached value (JSON-decoded) or None."""
        ...

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL in seconds. Returns True when stored."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove key from cache. Absent keys are not an error."""
        ...

    async def delete_many(self, keys: list[str]) -> int:
        """Remove several keys; return how many existed."""
        ...

    async def scan_keys(self, prefix: str) -> list[str]:
        """Return all keys starting with prefix (best effort, may be slow)."""
        ...

    async def add_to_index(self, index: str, member: str, ttl: int) -> None:
        """Add member to the set stored at index and refresh its TTL."""
        ...

    async def index_members(self, index: str) -> list[str]:
        """Return the members of the set stored at index."""
        ...
