from __future__ import annotations

import threading
import time

from app.concurrency import KeyedLocks, friendship_key


def test_pair_key_ignores_direction() -> None:
    assert friendship_key(3, 8) == friendship_key(8, 3)
    assert friendship_key(3, 8) != friendship_key(3, 9)


def test_same_key_is_mutually_exclusive() -> None:
    locks = KeyedLocks()
    inside = []
    overlaps = []

    def worker() -> None:
        with locks.hold(("pair", 1, 2)):
            inside.append(1)
            if len(inside) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []


def test_multiple_keys_in_either_order_do_not_deadlock() -> None:
    locks = KeyedLocks()
    done = []

    def worker(first, second) -> None:
        for _ in range(50):
            with locks.hold(first, second):
                pass
        done.append(True)

    threads = [
        threading.Thread(target=worker, args=("a", "b")),
        threading.Thread(target=worker, args=("b", "a")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert done == [True, True]


def test_hold_is_reentrant_for_the_same_thread() -> None:
    locks = KeyedLocks()
    entered = []
    with locks.hold("user"):
        with locks.hold("user", "post"):
            entered.append(True)
    assert entered == [True]
