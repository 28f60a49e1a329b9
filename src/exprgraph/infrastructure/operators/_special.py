"""
Escape hatches and multi-output factories.

- `debug`: identity node reporting its value and gradient.
- `checkpoint`: marks a node as releasable after forward consumption.
- `lambda_`: node backed by caller supplied NumPy closures.
- `topk`, `argmax`, `argmin`: return an `Expr2` of values and indices.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from ...domain._errors import GraphMismatchError, ShapeError
from ...domain._types import INDEX_TYPE
from ..graph._expr import Expr, Expr2
from ..graph._graph import ExpressionGraph
from ..graph._kinds import NodeKind
from ._helpers import expect_expr, graph_of, require_float, unary


def debug(x: Expr, message: str = "") -> Expr:
    """
    Identity that logs its forward value and backward gradient at INFO level
    through the ``exprgraph`` logger, and calls ``GraphConfig.debug_hook``.
    """
    x = expect_expr(x, "debug")
    return unary(NodeKind.DEBUG, x, attrs={"message": str(message)}, float_only=False)


def checkpoint(x: Expr) -> Expr:
    return expect_expr(x, "checkpoint").graph.checkpoint(x)


def lambda_(
    inputs: Sequence[Expr],
    shape: Sequence[int],
    value_type: Any,
    forward_fn: Callable[..., Any],
    backward_fn: Optional[Callable[..., Sequence[Any]]] = None,
    graph: Optional[ExpressionGraph] = None,
    name: Optional[str] = None,
) -> Expr:
    """
    Create a node computed by ``forward_fn(*input_values)``.

    Parameters
    ----------
    inputs : Sequence[Expr]
        Node inputs (may be empty when ``graph`` is given).
    shape, value_type
        Declared result shape and element type. The forward result must
        match the shape exactly.
    forward_fn : callable
        ``forward_fn(*inputs) -> ndarray``.
    backward_fn : callable, optional
        ``backward_fn(adj, value, *inputs) -> sequence`` with one gradient
        (or None) per input. Without it the node passes no gradient.
    graph : ExpressionGraph, optional
        Required when ``inputs`` is empty.
    """
    inputs = [expect_expr(x, "lambda") for x in inputs]
    if inputs:
        owner = graph_of(*inputs, op="lambda")
        if graph is not None and graph is not owner:
            raise GraphMismatchError("lambda")
    elif graph is None:
        raise ValueError("lambda: a graph is required when there are no inputs")
    else:
        owner = graph
    if not callable(forward_fn):
        raise TypeError("lambda: forward_fn must be callable")
    return owner.add_node(
        NodeKind.LAMBDA,
        inputs,
        shape,
        value_type,
        attrs={"forward_fn": forward_fn, "backward_fn": backward_fn},
        name=name,
        differentiable=backward_fn is not None,
    )


def topk(x: Expr, k: int, axis: int = -1, descending: bool = True) -> Expr2:
    """
    The ``k`` largest (``descending``) or smallest entries along ``axis``.

    Ties keep the lower index first. Gradients flow only to the selected
    positions; the indices (``uint32``) are not differentiable.

    Raises
    ------
    ShapeError
        If ``k`` is not in ``[1, size of axis]``.
    """
    x = expect_expr(x, "topk")
    require_float(x, "topk")
    ax = x.shape.axis(axis, "topk")
    n = x.shape[ax]
    if not 1 <= k <= n:
        raise ShapeError("topk", f"k={k} out of range for axis of size {n}", (x.shape,))
    shape = x.shape.with_axis(ax, k)
    values = x.graph.add_node(
        NodeKind.TOPK,
        (x,),
        shape,
        x.value_type,
        attrs={"k": int(k), "axis": ax, "descending": bool(descending)},
    )
    indices = x.graph.add_node(NodeKind.TOPK_INDICES, (values,), shape, INDEX_TYPE)
    return Expr2(values, indices)


def argmax(x: Expr, axis: int = -1) -> Expr2:
    return topk(x, 1, axis, descending=True)


def argmin(x: Expr, axis: int = -1) -> Expr2:
    return topk(x, 1, axis, descending=False)
