"""
Bounded thread pool helpers
Fan work out to a fixed number of threads and hand results back to a single consumer.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def default_worker_count() -> int:
    """One worker per available core."""
    try:
        return max(1, len(os.sched_getaffinity(0)))
    except AttributeError:
        # sched_getaffinity is Linux-only
        return os.cpu_count() or 1


def chunked(items: Sequence[T], chunk_size: int) -> List[Sequence[T]]:
    """Split items into consecutive slices of at most chunk_size."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


def map_ordered(func: Callable[[T], R], items: Iterable[T],
                max_workers: Optional[int] = None) -> Iterator[R]:
    """
    Run func over items on at most max_workers threads.

    Tasks are pulled from the executor's shared queue as workers free up,
    but results are yielded in submission order, so whatever the caller
    does with them is independent of thread timing. The caller's thread is
    the only consumer. An exception raised by a task is re-raised here.

    Args:
        func: Work function; must not mutate shared state
        items: Work items
        max_workers: Thread bound (defaults to one per core)
    """
    items = list(items)
    workers = max_workers or default_worker_count()

    if workers <= 1 or len(items) <= 1:
        for item in items:
            yield func(item)
        return

    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        futures = [executor.submit(func, item) for item in items]
        for future in futures:
            yield future.result()
