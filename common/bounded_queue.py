from __future__ import annotations

import queue
import threading
from typing import Any


class BoundedQueue:
    """Drop-oldest bounded queue with a public drop counter.

    The queue wraps :class:`queue.Queue` and is shared between the audio
    callback thread and the recorder. When the queue is full, the oldest
    item is discarded and a drop counter is incremented, so the callback
    never blocks.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")
        self._q: queue.Queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.drop_ct = 0

    def put(self, item: Any) -> None:
        """Put ``item`` into the queue, dropping the oldest if full."""
        with self._lock:
            try:
                self._q.put_nowait(item)
            except queue.Full:
                try:
                    self._q.get_nowait()
                except queue.Empty:
                    pass
                self._q.put_nowait(item)
                self.drop_ct += 1

    def get(self, block: bool = True, timeout: float | None = None):
        """Retrieve an item from the queue."""
        return self._q.get(block=block, timeout=timeout)

