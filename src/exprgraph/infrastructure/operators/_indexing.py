"""
Index based selection factories.

Indices are expressions of an integer element type (``graph.indices(...)``
creates them), or plain integer sequences for `index_select`, `rows` and
`cols`, which are converted into index constants.
"""

from __future__ import annotations

from typing import Sequence, Union

from ...domain._errors import ShapeError
from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._helpers import expect_expr, graph_of, require_int

Indices = Union[Expr, Sequence[int]]


def _index_expr(x: Expr, indices: Indices, op: str) -> Expr:
    if not isinstance(indices, Expr):
        indices = x.graph.indices(list(indices))
    graph_of(x, indices, op=op)
    require_int(indices, op)
    return indices


def gather(x: Expr, axis: int, indices: Expr) -> Expr:
    """
    Pick one entry of ``axis`` per index position.

    ``indices`` has the rank of ``x``; every other axis has the size of
    ``x``'s axis or 1. The result has the shape of ``x`` with ``axis`` sized
    like ``indices``.
    """
    x = expect_expr(x, "gather")
    indices = _index_expr(x, expect_expr(indices, "gather"), "gather")
    ax = x.shape.axis(axis, "gather")
    if indices.shape.rank != x.shape.rank:
        raise ShapeError("gather", "indices must have the rank of the input", (x.shape, indices.shape))
    for i, (dx, di) in enumerate(zip(x.shape, indices.shape)):
        if i != ax and di not in (1, dx):
            raise ShapeError("gather", f"indices do not match the input on axis {i}", (x.shape, indices.shape))
    return x.graph.add_node(
        NodeKind.GATHER,
        (x, indices),
        x.shape.with_axis(ax, indices.shape[ax]),
        x.value_type,
        attrs={"axis": ax},
    )


def index_select(x: Expr, axis: int, indices: Indices) -> Expr:
    """Select whole slices of ``axis``, in the order given by ``indices``."""
    x = expect_expr(x, "index_select")
    indices = _index_expr(x, indices, "index_select")
    ax = x.shape.axis(axis, "index_select")
    return x.graph.add_node(
        NodeKind.INDEX_SELECT,
        (x, indices),
        x.shape.with_axis(ax, indices.shape.elements()),
        x.value_type,
        attrs={"axis": ax},
    )


def rows(x: Expr, indices: Indices) -> Expr:
    """`index_select` along the second to last axis."""
    return index_select(x, -2, indices)


def cols(x: Expr, indices: Indices) -> Expr:
    """`index_select` along the last axis."""
    return index_select(x, -1, indices)
