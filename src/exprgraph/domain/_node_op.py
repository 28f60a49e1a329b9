"""
Kernel interface definitions.

This module defines the abstract base class for the numeric rule of one node
kind. Concrete subclasses of `NodeOp` implement both the forward computation
and the corresponding backward (gradient) computation, and are registered in
the kernel registry under a ``(kind, element type, device)`` key.

The graph engine decides *when* and *with which buffers* a kernel runs; the
kernel only maps input arrays to an output array (forward) and an output
gradient to input gradients (backward).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence


class NodeOp(ABC):
    """
    Abstract base class for node kernels.

    A kernel is a pair of static rules over NumPy arrays. Anything `backward`
    needs beyond the input values and the node value goes on `ctx` in
    `forward`.

    Notes
    -----
    - Kernel classes are never instantiated; per-node state lives on `ctx`.
    - `ctx` is recreated whenever a node is (re)evaluated, so a kernel never
      sees state from a previous generation or from a released value.
    - Gradients returned by `backward` may have the broadcast (output) shape;
      the engine reduces them to each input's shape before accumulating.
    """

    @staticmethod
    @abstractmethod
    def forward(ctx, *inputs: Any) -> Any:
        """
        Compute the node value from the values of its inputs.

        Parameters
        ----------
        ctx : Context
            Per-evaluation context exposing the node (shape, element type,
            attributes) and storage for values needed by `backward`.
        *inputs : ndarray
            Values of the node inputs, in input order.

        Returns
        -------
        ndarray
            The node value; must match the node's shape.
        """
        ...

    @staticmethod
    @abstractmethod
    def backward(ctx, adj: Any, value: Any, *inputs: Any) -> Sequence[Optional[Any]]:
        """
        Compute gradient contributions for every input.

        Parameters
        ----------
        ctx : Context
            The context populated during the forward pass.
        adj : ndarray
            Accumulated gradient of the loss with respect to this node.
        value : ndarray
            Forward value of this node.
        *inputs : ndarray
            Forward values of the node inputs.

        Returns
        -------
        tuple[ndarray | None, ...]
            One entry per input. ``None`` contributes nothing (a zero
            gradient).
        """
        ...
