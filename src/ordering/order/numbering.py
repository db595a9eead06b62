"""Order number generation.

Numbers look like ``VG-261019-3FA2-000042``: store prefix, UTC date, a random
node id drawn once per generator, and a per-generator counter. Two
generators (processes) only collide if they draw the same node on the same
day and reach the same counter value; the creation handler re-draws when
the store already holds the number, and the unique column is the backstop.
"""

import itertools
import secrets
import threading
from collections.abc import Callable
from datetime import UTC, datetime


class OrderNumberGenerator:
    def __init__(self, prefix: str = "VG", clock: Callable[[], datetime] | None = None) -> None:
        self.prefix = prefix
        self.node = secrets.token_hex(2).upper()
        self._sequence = itertools.count(1)
        self._clock = clock or (lambda: datetime.now(UTC))

    def next(self) -> str:
        sequence = next(self._sequence)
        return f"{self.prefix}-{self._clock():%y%m%d}-{self.node}-{sequence:06d}"


_generators: dict[str, OrderNumberGenerator] = {}
_generators_lock = threading.Lock()


def get_generator(prefix: str = "VG") -> OrderNumberGenerator:
    """Return the process-wide generator for a prefix."""
    generator = _generators.get(prefix)
    if generator is None:
        with _generators_lock:
            generator = _generators.setdefault(prefix, OrderNumberGenerator(prefix))
    return generator


def reset_generators() -> None:
    with _generators_lock:
        _generators.clear()
