"""
Graph construction, evaluation and device related exceptions for exprgraph.

This module defines the error taxonomy of the expression-graph engine. Every
error is raised synchronously where it is detected and is never converted into
a zero or default value:

- Shape/type errors (`ShapeError`, `AxisError`, `TypePromotionError`,
  `GraphMismatchError`) are raised by operator factories *before* a node is
  linked into its graph, so a graph is never left partially inconsistent.
- Sequencing errors (`GraphUsageError`) are raised when graph methods are
  called in an invalid order (e.g. `backward` before `forward`).
- Resource errors (`BufferAllocationError`) are propagated from the storage
  manager; the engine does not retry allocations itself.
- Recomputation errors (`RecomputationError`) signal a checkpoint placement
  that cannot reconstruct a released value.
- Device errors (`DeviceNotSupportedError`, `KernelNotFoundError`) signal that
  no kernel is registered for the requested kind, element type and device.
"""

from typing import Any, Optional, Sequence


class ShapeError(ValueError):
    """
    Raised when operand shapes are incompatible for an operator.

    Typical causes are non-broadcastable elementwise operands, mismatched
    inner dimensions of matrix products, mismatched batch dimensions, invalid
    reshape element counts and ranks above the supported maximum.

    Attributes
    ----------
    op : str
        Name of the operator that rejected the shapes.
    shapes : tuple
        The offending operand shapes, in operand order.
    """

    def __init__(self, op: str, message: str, shapes: Sequence[Any] = ()) -> None:
        """
        Initialize the ShapeError.

        Parameters
        ----------
        op : str
            Name of the operator that rejected the shapes.
        message : str
            Human readable reason.
        shapes : Sequence
            The offending shapes.
        """
        shapes = tuple(tuple(s) for s in shapes)
        detail = f" (shapes: {', '.join(str(list(s)) for s in shapes)})" if shapes else ""
        super().__init__(f"{op}: {message}{detail}")
        self.op = op
        self.shapes = shapes


class AxisError(ShapeError):
    """
    Raised when an axis does not resolve into ``[0, rank)`` after negative
    index normalization.
    """

    def __init__(self, axis: int, rank: int, op: str = "axis") -> None:
        super().__init__(op, f"axis {axis} is out of range for rank {rank}")
        self.axis = axis
        self.rank = rank


class TypePromotionError(TypeError):
    """
    Raised when two element types have no defined promotion, or when an
    operator receives an element type it does not accept.
    """

    def __init__(self, op: str, type_a: Any, type_b: Optional[Any] = None) -> None:
        if type_b is None:
            msg = f"{op}: element type '{type_a}' is not supported"
        else:
            msg = f"{op}: no type promotion defined for '{type_a}' and '{type_b}'"
        super().__init__(msg)
        self.op = op
        self.type_a = type_a
        self.type_b = type_b


class GraphMismatchError(ValueError):
    """
    Raised when an operator receives expressions that belong to different
    graphs, or an object that is not an expression of this engine.
    """

    def __init__(self, op: str, detail: str = "operands belong to different graphs") -> None:
        super().__init__(f"{op}: {detail}")
        self.op = op


class GraphUsageError(RuntimeError):
    """
    Raised when graph operations are sequenced incorrectly.

    Examples are calling `backward` on a target that has not been forward
    evaluated, calling it on a non-scalar target without a seed gradient, or
    reading the value of a node that was never evaluated.
    """


class RecomputationError(RuntimeError):
    """
    Raised when the checkpoint controller cannot reconstruct a value that is
    required by the backward pass.

    Attributes
    ----------
    node_id : int
        Creation index of the node whose value could not be reconstructed.
    """

    def __init__(self, node_id: int, reason: str) -> None:
        super().__init__(f"Cannot recompute value of node #{node_id}: {reason}")
        self.node_id = node_id
        self.reason = reason


class BufferAllocationError(MemoryError):
    """
    Raised by the storage manager when a buffer of the requested shape and
    element type cannot be provided.

    Attributes
    ----------
    nbytes : int
        Size of the failed request in bytes.
    budget : Optional[int]
        Configured memory budget in bytes, if any.
    """

    def __init__(self, nbytes: int, in_use: int, budget: Optional[int]) -> None:
        limit = "unbounded" if budget is None else f"{budget} bytes"
        super().__init__(
            f"Out of memory: cannot allocate {nbytes} bytes "
            f"({in_use} bytes in use, budget {limit})."
        )
        self.nbytes = nbytes
        self.in_use = in_use
        self.budget = budget


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when a node is evaluated on a device backend that is not
    implemented.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted (e.g., "plus", "dot").
    device : str
        String representation of the device on which the operation
        was attempted.
    """

    def __init__(self, op: str, device: str) -> None:
        super().__init__(f"{op} is not implemented for device '{device}'.")
        self.op = op
        self.device = device


class KernelNotFoundError(DeviceNotSupportedError):
    """
    Raised when no kernel is registered for a (kind, element type, device)
    triple while the device itself is known to the registry.
    """

    def __init__(self, op: str, value_type: str, device: str) -> None:
        RuntimeError.__init__(
            self,
            f"No kernel registered for '{op}' with element type '{value_type}' "
            f"on device '{device}'.",
        )
        self.op = op
        self.device = device
        self.value_type = value_type
