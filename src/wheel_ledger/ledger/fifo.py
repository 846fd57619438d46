"""FIFO queue helpers shared by the share and option ledgers."""

from collections import deque
from datetime import datetime
from typing import Callable, TypeVar

T = TypeVar("T")


def enqueue_fifo(queue: deque[T], item: T, opened_at: Callable[[T], datetime]) -> None:
    """
    Insert a lot keeping the queue in ascending date order.

    Lots dated the same as existing ones go after them, so same-day lots
    keep their arrival order. The common case (newest lot) is an append.
    """
    item_date = opened_at(item)
    if not queue or opened_at(queue[-1]) <= item_date:
        queue.append(item)
        return

    for index, existing in enumerate(queue):
        if opened_at(existing) > item_date:
            queue.insert(index, item)
            return
    queue.append(item)
