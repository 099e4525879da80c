import threading
import time

import pytest

from geoindex.worker_pool import chunked, default_worker_count, map_ordered


def test_chunked():
    assert chunked(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked([1], 0)


def test_default_worker_count_is_positive():
    assert default_worker_count() >= 1


def test_results_come_back_in_submission_order():
    def slow_identity(x):
        time.sleep(0.01 * (5 - x))
        return x

    assert list(map_ordered(slow_identity, range(5), max_workers=5)) == [0, 1, 2, 3, 4]


def test_worker_bound_is_respected():
    lock = threading.Lock()
    active = [0]
    peak = [0]

    def task(_):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        time.sleep(0.01)
        with lock:
            active[0] -= 1

    list(map_ordered(task, range(20), max_workers=3))
    assert 1 <= peak[0] <= 3


def test_single_worker_runs_inline():
    caller = threading.get_ident()
    threads = list(map_ordered(lambda _: threading.get_ident(), range(3), max_workers=1))
    assert threads == [caller] * 3


def test_task_exception_reaches_consumer():
    def boom(x):
        if x == 2:
            raise RuntimeError("bad item")
        return x

    with pytest.raises(RuntimeError, match="bad item"):
        list(map_ordered(boom, range(4), max_workers=2))
