import threading

import pytest

from IrradianceStudio.analysis.core.factorial import (
    FACTORIAL_CACHE_SIZE,
    FactorialCache,
    factorial,
    iterative_factorial,
)
from IrradianceStudio.analysis.exceptions import InvalidParameter


@pytest.mark.parametrize("n, expected", [(0, 1.0), (1, 1.0), (5, 120.0), (10, 3628800.0)])
def test_known_values(n, expected):
    assert factorial(n) == expected
    assert iterative_factorial(n) == expected


def test_cached_and_iterative_paths_agree():
    cache = FactorialCache()
    for n in range(41):
        assert cache(n) == iterative_factorial(n), f"n={n}"


def test_values_above_cache_bound_are_computed():
    cache = FactorialCache(size=4)
    assert cache(3) == 6.0
    assert cache(4) == 24.0
    assert cache(12) == 479001600.0


def test_cache_populates_lazily_once():
    cache = FactorialCache()
    assert not cache.is_populated
    assert cache(FACTORIAL_CACHE_SIZE + 3) == iterative_factorial(FACTORIAL_CACHE_SIZE + 3)
    assert not cache.is_populated  # above the bound never touches the table
    cache(3)
    assert cache.is_populated
    assert cache.size == FACTORIAL_CACHE_SIZE


def test_concurrent_first_use():
    cache = FactorialCache()
    results = [None] * 16
    barrier = threading.Barrier(len(results))

    def worker(i):
        barrier.wait()
        results[i] = [cache(n) for n in range(FACTORIAL_CACHE_SIZE)]

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(results))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    expected = [iterative_factorial(n) for n in range(FACTORIAL_CACHE_SIZE)]
    assert all(r == expected for r in results)


def test_negative_input_rejected():
    with pytest.raises(InvalidParameter):
        factorial(-1)
    with pytest.raises(InvalidParameter):
        iterative_factorial(-3)
    with pytest.raises(InvalidParameter):
        FactorialCache(size=0)
