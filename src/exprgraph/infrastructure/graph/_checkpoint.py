"""
Checkpoint controller.

Marked ("checkpointed") nodes trade compute for memory:

- during forward, a marked node's value goes back to the buffer pool as soon
  as every consumer in the current pass has read it (the pass target is
  never released);
- during backward, a released value is recomputed on demand, recursively
  through other released marked nodes, using forward kernels only;
- once the node's own backward step has run, the recomputed value is
  released again.

Recomputation never reads or writes gradient buffers. A value that is
missing and was not released by this controller in the current generation
cannot be reconstructed and raises `RecomputationError`.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING, Iterable, Optional

from ...domain._errors import RecomputationError
from ..storage._buffer import TensorBuffer

if TYPE_CHECKING:
    from ._graph import ExpressionGraph
    from ._node import Node

logger = logging.getLogger(__name__)


class CheckpointController:
    """
    Tracks pending consumers of marked nodes and restores released values.

    Parameters
    ----------
    graph : ExpressionGraph
        Graph whose nodes are managed.
    """

    def __init__(self, graph: "ExpressionGraph") -> None:
        self._graph = graph
        self._pending: Counter = Counter()
        self._target: Optional["Node"] = None
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._pending.clear()
            self._target = None

    def begin_forward(self, order: Iterable["Node"], target: Optional["Node"]) -> None:
        """
        Count, for each marked node in ``order``, the consumers that will
        read it during this pass.
        """
        pending: Counter = Counter()
        for node in order:
            for inp in set(node.inputs):
                if inp.checkpointed:
                    pending[inp.id] += 1
        with self._lock:
            self._pending = pending
            self._target = target

    def consumed(self, consumer: "Node") -> None:
        """Record that ``consumer`` has finished reading its inputs."""
        to_release = []
        with self._lock:
            for inp in set(consumer.inputs):
                if inp.id not in self._pending:
                    continue
                self._pending[inp.id] -= 1
                if self._pending[inp.id] <= 0:
                    del self._pending[inp.id]
                    if inp is not self._target:
                        to_release.append(inp)
        for node in to_release:
            self.release(node)

    def release(self, node: "Node") -> None:
        """Return a marked node's value to the pool, remembering when."""
        with node.lock:
            if node.value is None:
                return
            self._graph.pool.release(node.value)
            node.value = None
            node.ctx = None
            node.released_generation = self._graph.generation
        logger.debug("released checkpointed node #%d", node.id)

    def ensure_value(self, node: "Node") -> TensorBuffer:
        """
        Return the valid value of ``node``, recomputing it if it was released.

        Raises
        ------
        RecomputationError
            If the value is missing and cannot be reconstructed.
        """
        graph = self._graph
        if graph.is_valid(node):
            return node.value

        if not node.checkpointed:
            kind = "leaf" if node.is_leaf else "intermediate"
            raise RecomputationError(node.id, f"{kind} value is not available")
        if node.released_generation != graph.generation:
            raise RecomputationError(
                node.id,
                f"value was released in generation {node.released_generation}, "
                f"current generation is {graph.generation}",
            )

        # inputs always have smaller ids, so locks are taken in decreasing id order
        with node.lock:
            if graph.is_valid(node):
                return node.value
            for inp in node.inputs:
                self.ensure_value(inp)
            graph.compute(node)
        logger.debug("recomputed checkpointed node #%d", node.id)
        return node.value

    def after_backward(self, node: "Node", target: "Node") -> None:
        """Release a marked node again once its backward step is done."""
        if node.checkpointed and node is not target and node.value is not None:
            self.release(node)
