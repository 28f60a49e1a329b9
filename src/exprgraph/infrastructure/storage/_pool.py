"""
Buffer pool: the storage manager of an expression graph.

The graph requests buffers by ``(shape, element type, generation)`` and hands
them back when a value or gradient is released. Released buffers are cached
per ``(shape, dtype)`` bucket and recycled for later requests, including in
later generations. A buffer is only returned to the free list by its current
owner, so it is never handed to a new node while still readable through the
previous one.

An optional memory budget bounds the bytes held by the pool (in use plus
cached). Under pressure the cache is evicted first; if the request still does
not fit, `BufferAllocationError` is raised. Allocation is never retried.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Optional

import numpy as np

from ...domain._errors import BufferAllocationError
from ...domain._shape import Shape
from ...domain._types import ElementType
from ._buffer import TensorBuffer, to_numpy_dtype

logger = logging.getLogger(__name__)


class BufferPool:
    """
    Thread-safe pool of `TensorBuffer` objects.

    Parameters
    ----------
    budget : Optional[int]
        Maximum number of bytes the pool may hold. None means unbounded.
    reuse : bool
        If False, released buffers are dropped instead of cached.

    Example
    -------
        >>> pool = BufferPool(budget=1 << 20)
        >>> buf = pool.allocate((2, 3), ElementType.FLOAT32, generation=0)
        >>> pool.release(buf)      # cached for the next (2, 3) float32 request
    """

    MAX_BUFFERS_PER_BUCKET = 32

    def __init__(self, budget: Optional[int] = None, reuse: bool = True) -> None:
        if budget is not None and budget < 0:
            raise ValueError(f"budget must be non-negative, got {budget}")
        self.budget = budget
        self.reuse = reuse
        self._free: dict[tuple, list[TensorBuffer]] = defaultdict(list)
        self._in_use_bytes = 0
        self._free_bytes = 0
        self._lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "total_acquired": 0,
            "total_released": 0,
        }

    @staticmethod
    def _key(shape: Shape, dtype: np.dtype) -> tuple:
        return (tuple(shape), dtype.str)

    def allocate(
        self,
        shape,
        value_type: ElementType,
        generation: int,
        owner: Optional[int] = None,
    ) -> TensorBuffer:
        """
        Acquire a buffer of exactly ``shape`` and ``value_type``.

        Contents are unspecified; callers overwrite them.

        Raises
        ------
        BufferAllocationError
            If the budget cannot accommodate the request or NumPy fails to
            allocate.
        """
        shape = Shape(shape)
        dtype = to_numpy_dtype(value_type)
        key = self._key(shape, dtype)
        nbytes = shape.elements() * dtype.itemsize

        with self._lock:
            self._stats["total_acquired"] += 1
            bucket = self._free.get(key)
            if bucket:
                buf = bucket.pop()
                self._free_bytes -= nbytes
                self._in_use_bytes += nbytes
                self._stats["hits"] += 1
                buf.generation = generation
                buf.owner = owner
                buf.in_use = True
                return buf

            self._stats["misses"] += 1
            if self.budget is not None:
                if self._in_use_bytes + self._free_bytes + nbytes > self.budget:
                    self._evict_locked(
                        self._in_use_bytes + self._free_bytes + nbytes - self.budget
                    )
                if self._in_use_bytes + self._free_bytes + nbytes > self.budget:
                    raise BufferAllocationError(nbytes, self._in_use_bytes, self.budget)
            try:
                data = np.empty(shape, dtype=dtype)
            except MemoryError:
                raise BufferAllocationError(nbytes, self._in_use_bytes, self.budget) from None
            self._in_use_bytes += nbytes

        buf = TensorBuffer(shape, value_type, generation, data=data)
        buf.owner = owner
        buf.in_use = True
        return buf

    def release(self, buf: Optional[TensorBuffer]) -> None:
        """
        Return a buffer to the pool. Releasing None or an already released
        buffer is a no-op.
        """
        if buf is None:
            return
        with self._lock:
            if not buf.in_use:
                return
            buf.in_use = False
            buf.owner = None
            nbytes = buf.nbytes
            self._in_use_bytes -= nbytes
            self._stats["total_released"] += 1

            key = self._key(buf.shape, buf.data.dtype)
            bucket = self._free[key]
            if self.reuse and len(bucket) < self.MAX_BUFFERS_PER_BUCKET:
                bucket.append(buf)
                self._free_bytes += nbytes

    def _evict_locked(self, needed: int) -> None:
        freed = 0
        for key in list(self._free):
            bucket = self._free[key]
            while bucket and freed < needed:
                buf = bucket.pop()
                freed += buf.nbytes
                self._free_bytes -= buf.nbytes
                self._stats["evictions"] += 1
            if not bucket:
                del self._free[key]
            if freed >= needed:
                break
        if freed:
            logger.debug("Evicted %d cached bytes from buffer pool", freed)

    def trim(self) -> None:
        """Drop every cached (free) buffer."""
        with self._lock:
            self._free.clear()
            self._free_bytes = 0

    def stats(self) -> dict:
        """Return allocation counters and byte totals."""
        with self._lock:
            out = dict(self._stats)
            out["in_use_bytes"] = self._in_use_bytes
            out["cached_bytes"] = self._free_bytes
            out["budget"] = self.budget
        return out
