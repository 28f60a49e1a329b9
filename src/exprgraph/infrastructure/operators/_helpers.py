"""
Validation helpers shared by operator factories.

Factories resolve operands, check graph membership, shapes and element types
here, and only then call `ExpressionGraph.add_node`. Nothing in this module
mutates a graph except through the scalar cache.
"""

from __future__ import annotations

import numbers
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from ...domain._errors import GraphMismatchError, ShapeError, TypePromotionError
from ...domain._promotion import broadcast_shape, promote_types
from ...domain._shape import Shape
from ...domain._types import ElementType
from ..graph._expr import Expr
from ..graph._graph import ExpressionGraph
from ..graph._kinds import NodeKind

Operand = Union[Expr, int, float]


def is_scalar(x: Any) -> bool:
    return isinstance(x, (numbers.Number, np.number, np.bool_)) and not isinstance(x, complex)


def graph_of(*operands: Any, op: str) -> ExpressionGraph:
    """
    Return the graph shared by every `Expr` among ``operands``.

    Raises
    ------
    GraphMismatchError
        If no operand is an `Expr`, an operand is neither an `Expr` nor a
        number, or the expressions belong to different graphs.
    """
    graph: Optional[ExpressionGraph] = None
    for x in operands:
        if isinstance(x, Expr):
            if graph is None:
                graph = x.graph
            elif x.graph is not graph:
                raise GraphMismatchError(op)
        elif not is_scalar(x):
            raise GraphMismatchError(op, f"expected an Expr or a number, got {type(x).__name__}")
    if graph is None:
        raise GraphMismatchError(op, "at least one operand must be an Expr")
    return graph


def expect_expr(x: Any, op: str) -> Expr:
    if not isinstance(x, Expr):
        raise GraphMismatchError(op, f"expected an Expr, got {type(x).__name__}")
    return x


def scalar_like(value: Any, like: Expr, op: str) -> Expr:
    """Rank-0 cached constant of ``like``'s element type."""
    value_type = like.value_type
    if value_type.is_int and not float(value).is_integer():
        raise TypePromotionError(op, f"non-integral scalar {value!r}", value_type)
    value = float(value) if value_type.is_float else int(value)
    return like.graph.scalar(value, value_type)


def binary_operands(a: Operand, b: Operand, op: str) -> tuple[Expr, Expr, Shape, ElementType]:
    """
    Resolve two operands (at least one an `Expr`) and compute the broadcast
    shape and promoted element type of the result.
    """
    graph_of(a, b, op=op)
    if not isinstance(a, Expr):
        a = scalar_like(a, b, op)
    if not isinstance(b, Expr):
        b = scalar_like(b, a, op)
    shape = broadcast_shape(a.shape, b.shape, op)
    value_type = promote_types(a.value_type, b.value_type, op)
    return a, b, shape, value_type


def binary(kind: NodeKind, a: Operand, b: Operand, value_type: Optional[ElementType] = None) -> Expr:
    a, b, shape, promoted = binary_operands(a, b, kind.value)
    return a.graph.add_node(kind, (a, b), shape, value_type or promoted)


def require_float(x: Expr, op: str) -> None:
    if not x.value_type.is_float:
        raise TypePromotionError(op, x.value_type)


def require_int(x: Expr, op: str) -> None:
    if not x.value_type.is_int:
        raise TypePromotionError(op, x.value_type)


def require_rank(x: Expr, rank: int, op: str, exact: bool = False) -> None:
    if (x.shape.rank != rank) if exact else (x.shape.rank < rank):
        rel = "exactly" if exact else "at least"
        raise ShapeError(op, f"expected rank {rel} {rank}, got {x.shape.rank}", (x.shape,))


def unary(
    kind: NodeKind,
    x: Any,
    attrs: Optional[dict[str, Any]] = None,
    float_only: bool = True,
    shape: Any = None,
    value_type: Optional[ElementType] = None,
) -> Expr:
    x = expect_expr(x, kind.value)
    if float_only:
        require_float(x, kind.value)
    return x.graph.add_node(
        kind,
        (x,),
        x.shape if shape is None else shape,
        value_type or x.value_type,
        attrs=attrs,
    )


def single(nodes: Any, op: str) -> Expr:
    """Unwrap a one-element list form; longer lists are not supported."""
    if isinstance(nodes, Expr):
        return nodes
    nodes = list(nodes)
    if len(nodes) != 1:
        raise NotImplementedError(f"{op} of {len(nodes)} expressions is not implemented")
    return expect_expr(nodes[0], op)


def as_exprs(xs: Iterable[Any], op: str) -> Sequence[Expr]:
    out = [expect_expr(x, op) for x in xs]
    if not out:
        raise ValueError(f"{op}: expected at least one expression")
    graph_of(*out, op=op)
    return out
