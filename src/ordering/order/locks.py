"""Per-order mutual exclusion for read-modify-write cycles.

A fixed array of re-entrant locks striped by order number: commands on the
same order serialize, commands on different orders rarely contend. Holding
the stripe across ``current_domain.process`` covers load, mutation and the
unit-of-work commit.
"""

import threading
import zlib
from collections.abc import Iterator
from contextlib import contextmanager


class OrderLocks:
    def __init__(self, stripes: int = 64) -> None:
        self._locks = [threading.RLock() for _ in range(stripes)]

    def _lock_for(self, order_number: str) -> threading.RLock:
        return self._locks[zlib.crc32(order_number.encode("utf-8")) % len(self._locks)]

    @contextmanager
    def hold(self, order_number: str) -> Iterator[None]:
        with self._lock_for(order_number):
            yield


order_locks = OrderLocks()
