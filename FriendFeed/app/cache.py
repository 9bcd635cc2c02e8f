"""TTL cache with namespace-wide invalidation.

Every read-heavy service call memoizes through the single ``coordinator``
instance below, and every mutation evicts the namespaces listed for it in
``INVALIDATIONS``. Eviction is coarse: a whole namespace goes at once. The
timeline namespaces are derived from both the friendship graph and the post
store, so both kinds of mutation clear them.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, Optional, Tuple

from cachetools import TTLCache

from .core.config import get_settings

logger = logging.getLogger(__name__)

_MISSING = object()


class Namespace(str, enum.Enum):
    USER_BY_ID = "user-by-id"
    USER_BY_USERNAME = "user-by-username"
    ALL_USERS = "all-users"
    POST_BY_ID = "post-by-id"
    ALL_POSTS = "all-posts"
    PAGINATED_POSTS = "paginated-posts"
    POSTS_BY_USER = "posts-by-user"
    SEARCH_RESULTS = "search-results"
    FRIENDS_OF_USER = "friends-of-user"
    FRIEND_COUNT = "friend-count"
    TIMELINE = "timeline"
    TIMELINE_PAGINATED = "timeline-paginated"
    TIMELINE_BY_DATE = "timeline-by-date"
    TIMELINE_FILTERED_PAGINATED = "timeline-filtered-paginated"


TIMELINE_NAMESPACES: FrozenSet[Namespace] = frozenset(
    {
        Namespace.TIMELINE,
        Namespace.TIMELINE_PAGINATED,
        Namespace.TIMELINE_BY_DATE,
        Namespace.TIMELINE_FILTERED_PAGINATED,
    }
)


class Mutation(str, enum.Enum):
    CREATE_USER = "create-user"
    UPDATE_USER = "update-user"
    DELETE_USER = "delete-user"
    CREATE_POST = "create-post"
    UPDATE_POST = "update-post"
    DELETE_POST = "delete-post"
    ADD_FRIENDSHIP = "add-friendship"
    REMOVE_FRIENDSHIP = "remove-friendship"


_POST_WRITE = frozenset(
    {
        Namespace.ALL_POSTS,
        Namespace.POSTS_BY_USER,
        Namespace.SEARCH_RESULTS,
    }
) | TIMELINE_NAMESPACES

_POST_CHANGE = _POST_WRITE | {Namespace.POST_BY_ID, Namespace.PAGINATED_POSTS}

_FRIENDSHIP_CHANGE = frozenset({Namespace.FRIENDS_OF_USER, Namespace.FRIEND_COUNT}) | TIMELINE_NAMESPACES

_USER_CHANGE = frozenset({Namespace.USER_BY_ID, Namespace.USER_BY_USERNAME, Namespace.ALL_USERS})

INVALIDATIONS: Dict[Mutation, FrozenSet[Namespace]] = {
    Mutation.CREATE_USER: frozenset({Namespace.ALL_USERS}),
    Mutation.UPDATE_USER: _USER_CHANGE,
    # Deleting a user also drops their posts and every edge touching them.
    Mutation.DELETE_USER: _USER_CHANGE | _POST_CHANGE | _FRIENDSHIP_CHANGE,
    Mutation.CREATE_POST: _POST_WRITE,
    Mutation.UPDATE_POST: _POST_CHANGE,
    Mutation.DELETE_POST: _POST_CHANGE,
    Mutation.ADD_FRIENDSHIP: _FRIENDSHIP_CHANGE,
    Mutation.REMOVE_FRIENDSHIP: _FRIENDSHIP_CHANGE,
}


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    invalidations: int = 0


class CacheCoordinator:
    """Thread-safe TTL memoization keyed by (namespace, key).

    Each namespace is its own bounded ``TTLCache``; expired entries are dropped
    on the next write to that namespace and the least recently used entry goes
    once ``max_entries`` is reached.

    Each namespace also carries a generation number bumped on invalidation.
    ``get_or_load`` only stores a freshly loaded value if the generation is
    unchanged, so a load that raced with an invalidation is returned to its
    caller but never cached.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.ttl_seconds = settings.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.max_entries = settings.CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self._lock = threading.RLock()
        self._entries: Dict[Namespace, TTLCache] = {
            namespace: TTLCache(maxsize=self.max_entries, ttl=self.ttl_seconds, timer=clock)
            for namespace in Namespace
        }
        self._generations: Dict[Namespace, int] = defaultdict(int)
        self._stats: Dict[Namespace, CacheStats] = defaultdict(CacheStats)

    def get(self, namespace: Namespace, key: Hashable) -> Tuple[Any, bool]:
        with self._lock:
            value = self._entries[namespace].get(key, _MISSING)
            stats = self._stats[namespace]
            if value is _MISSING:
                stats.misses += 1
                return None, False
            stats.hits += 1
            return value, True

    def put(self, namespace: Namespace, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[namespace][key] = value

    def generation(self, namespace: Namespace) -> int:
        with self._lock:
            return self._generations[namespace]

    def get_or_load(self, namespace: Namespace, key: Hashable, loader: Callable[[], Any]) -> Any:
        value, hit = self.get(namespace, key)
        if hit:
            logger.debug("cache hit %s %r", namespace.value, key)
            return value
        logger.debug("cache miss %s %r", namespace.value, key)
        generation = self.generation(namespace)
        value = loader()
        with self._lock:
            if self._generations[namespace] == generation:
                self.put(namespace, key, value)
            else:
                logger.debug("discarding load for %s %r after invalidation", namespace.value, key)
        return value

    def invalidate(self, namespaces: Iterable[Namespace]) -> None:
        namespaces = tuple(namespaces)
        with self._lock:
            for namespace in namespaces:
                self._entries[namespace].clear()
                self._generations[namespace] += 1
                self._stats[namespace].invalidations += 1
        logger.debug("invalidated namespaces %s", sorted(ns.value for ns in namespaces))

    def invalidate_for(self, mutation: Mutation) -> None:
        self.invalidate(INVALIDATIONS[mutation])

    def clear(self) -> None:
        with self._lock:
            for namespace, entries in self._entries.items():
                entries.clear()
                self._generations[namespace] += 1

    def size(self, namespace: Namespace) -> int:
        with self._lock:
            entries = self._entries[namespace]
            entries.expire()
            return len(entries)

    def stats(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {
                namespace.value: {
                    "hits": stats.hits,
                    "misses": stats.misses,
                    "invalidations": stats.invalidations,
                    "entries": self.size(namespace),
                }
                for namespace, stats in self._stats.items()
            }

    def reset_stats(self) -> None:
        with self._lock:
            self._stats.clear()


coordinator = CacheCoordinator()
