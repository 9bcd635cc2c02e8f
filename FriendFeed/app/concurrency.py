from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Tuple


class KeyedLocks:
    """Per-key re-entrant locks, created on demand and dropped when idle.

    Several keys can be held at once; they are always acquired in sorted
    order so two callers locking the same set never deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, Tuple[threading.RLock, int]] = {}

    def _checkout(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.RLock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _release(self, key: Hashable) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        ordered = sorted(set(keys), key=repr)
        acquired: List[Tuple[Hashable, threading.RLock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._release(key)


row_locks = KeyedLocks()


def user_key(user_id: int) -> Tuple[str, int]:
    return ("user", user_id)


def post_key(post_id: int) -> Tuple[str, int]:
    return ("post", post_id)


def friendship_key(user_id: int, friend_id: int) -> Tuple[str, int, int]:
    low, high = sorted((user_id, friend_id))
    return ("friendship", low, high)
