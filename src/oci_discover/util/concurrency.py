from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def parallel_map_ordered(
    func: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Apply func to every item and return the results in input order, whatever
    order the workers finish in. With max_workers <= 1 the items are processed
    inline on the calling thread.

    At most max_workers calls are in flight at any time. The first worker
    exception cancels pending work and is re-raised.
    """
    if max_workers <= 1:
        return [func(item) for item in items]

    iterator = iter(items)
    inflight: Dict[Future[R], int] = {}
    finished: Dict[int, R] = {}
    submitted = 0

    with ThreadPoolExecutor(max_workers=max_workers) as executor:

        def _submit_next() -> bool:
            nonlocal submitted
            try:
                item = next(iterator)
            except StopIteration:
                return False
            inflight[executor.submit(func, item)] = submitted
            submitted += 1
            return True

        for _ in range(max_workers):
            if not _submit_next():
                break

        while inflight:
            done, _ = wait(inflight.keys(), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = inflight.pop(fut)
                try:
                    finished[idx] = fut.result()
                except BaseException:
                    for pending in inflight:
                        pending.cancel()
                    raise
                _submit_next()

    return [finished[i] for i in range(submitted)]
