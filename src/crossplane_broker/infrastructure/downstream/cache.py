"""Process-scoped cache of downstream cluster clients."""

import threading
from typing import Callable, Optional

from cachetools import TTLCache

from crossplane_broker.domain.ports import ResourceClientPort

DEFAULT_MAXSIZE = 128


class DownstreamClientCache:
    """Thread-safe cache of clients keyed by provider config name.

    Entries expire after ``ttl`` seconds so rotated cluster credentials are
    picked up on the next resolution. ``get_or_create`` builds at most one
    client per name at a time, resolutions of other names are not blocked.
    """

    def __init__(self, ttl: float = 3600.0, maxsize: int = DEFAULT_MAXSIZE) -> None:
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()
        self._build_locks: dict[str, threading.Lock] = {}

    def get(self, name: str) -> Optional[ResourceClientPort]:
        with self._lock:
            return self._cache.get(name)

    def put(self, name: str, client: ResourceClientPort) -> None:
        with self._lock:
            self._cache[name] = client

    def get_or_create(self, name: str, create: Callable[[], ResourceClientPort]) -> ResourceClientPort:
        """
        Return the cached client for a name, building it if missing.

        Args:
            name: Provider config name
            create: Builds the client, called without the cache lock held

        Returns:
            The cached or newly built client
        """
        with self._lock:
            client = self._cache.get(name)
            if client is not None:
                return client
            build_lock = self._build_locks.setdefault(name, threading.Lock())

        with build_lock:
            client = self.get(name)
            if client is None:
                client = create()
                self.put(name, client)
        return client

    def invalidate(self, name: str) -> None:
        with self._lock:
            self._cache.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
