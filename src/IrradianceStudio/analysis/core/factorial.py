import logging
import threading
from typing import Optional, Tuple

from IrradianceStudio.analysis.exceptions import InvalidParameter

logger = logging.getLogger(__name__)

# 0! .. 34!
FACTORIAL_CACHE_SIZE = 35


def iterative_factorial(n: int) -> float:
    """
    n! as a double, computed by a running product every call.
    """
    if n < 0:
        raise InvalidParameter(f'factorial is undefined for n:{n}')

    result = 1.0
    for i in range(2, n + 1):
        result *= i
    return result


class FactorialCache:
    """
    Memoized factorials for the basis normalization constants.

    The table is filled once, under a lock, the first time a value inside the
    cached range is requested. After that it is a read-only tuple and lookups
    take no lock. Values above the cached range fall back to
    :func:`iterative_factorial`.

    :params size: number of cached entries, covering 0! .. (size-1)!
    """

    def __init__(self, size: int = FACTORIAL_CACHE_SIZE):
        if size < 1:
            raise InvalidParameter(f'factorial cache size must be >= 1, got {size}')
        self._size = size
        self._values: Optional[Tuple[float, ...]] = None
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_populated(self) -> bool:
        return self._values is not None

    def _populate(self) -> Tuple[float, ...]:
        with self._lock:
            if self._values is None:
                values = [1.0]
                for i in range(1, self._size):
                    values.append(values[-1] * i)
                self._values = tuple(values)
                logger.debug(f"Populated factorial cache with {self._size} entries")
        return self._values

    def __call__(self, n: int) -> float:
        if n < 0:
            raise InvalidParameter(f'factorial is undefined for n:{n}')
        if n >= self._size:
            return iterative_factorial(n)

        values = self._values
        if values is None:
            values = self._populate()
        return values[n]


DEFAULT_FACTORIAL_CACHE = FactorialCache()


def factorial(n: int) -> float:
    """n! using the process-wide default cache."""
    return DEFAULT_FACTORIAL_CACHE(n)
