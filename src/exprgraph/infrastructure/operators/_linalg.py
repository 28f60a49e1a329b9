"""
Matrix product factories.

- `dot`: ``scale * op(a) @ op(b)`` where ``b`` is a matrix (any leading axes
  of ``b`` must be 1) and the leading axes of ``a`` are batch axes.
- `bdot`: batched product; both operands carry identical batch axes.
- `affine`: `dot` plus a bias broadcast onto the result.
- `csr_dot` / `dot_csr`: products with a sparse matrix given in compressed
  sparse row form (``values``, ``indices``, ``offsets``).

``op`` swaps the last two axes when the matching ``trans_*`` flag is set.
"""

from __future__ import annotations

from typing import Sequence

from ...domain._errors import ShapeError
from ...domain._promotion import broadcast_shape, is_broadcastable_to, promote_all, promote_types
from ...domain._shape import Shape
from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._helpers import expect_expr, graph_of, require_float, require_int, require_rank


def _mat(shape: Shape, trans: bool) -> tuple[int, int]:
    rows, cols = shape[-2], shape[-1]
    return (cols, rows) if trans else (rows, cols)


def _product_shape(a: Expr, b: Expr, trans_a: bool, trans_b: bool, op: str) -> Shape:
    require_rank(a, 2, op)
    require_rank(b, 2, op)
    m, k = _mat(a.shape, trans_a)
    k2, n = _mat(b.shape, trans_b)
    if k != k2:
        raise ShapeError(op, f"inner dimensions differ ({k} vs {k2})", (a.shape, b.shape))
    batch = broadcast_shape(a.shape[:-2], b.shape[:-2], op)
    return Shape(tuple(batch) + (m, n))


def dot(a: Expr, b: Expr, trans_a: bool = False, trans_b: bool = False, scale: float = 1.0) -> Expr:
    """
    Matrix product of a (possibly batched) ``a`` with a matrix ``b``.

    Raises
    ------
    ShapeError
        If an operand has rank < 2, the inner dimensions differ, or ``b`` has
        a leading axis larger than 1 (use `bdot`).
    """
    graph_of(a, b, op="dot")
    a, b = expect_expr(a, "dot"), expect_expr(b, "dot")
    if any(d != 1 for d in b.shape[:-2]):
        raise ShapeError("dot", "leading axes of the right operand must be 1; use bdot", (a.shape, b.shape))
    shape = _product_shape(a, b, trans_a, trans_b, "dot")
    return a.graph.add_node(
        NodeKind.DOT,
        (a, b),
        shape,
        promote_types(a.value_type, b.value_type, "dot"),
        attrs={"trans_a": bool(trans_a), "trans_b": bool(trans_b), "scale": float(scale)},
    )


def bdot(a: Expr, b: Expr, trans_a: bool = False, trans_b: bool = False, scale: float = 1.0) -> Expr:
    """Batched matrix product; batch axes must match exactly."""
    graph_of(a, b, op="bdot")
    a, b = expect_expr(a, "bdot"), expect_expr(b, "bdot")
    require_rank(a, 2, "bdot")
    if a.shape.rank != b.shape.rank or a.shape[:-2] != b.shape[:-2]:
        raise ShapeError("bdot", "batch dimensions differ", (a.shape, b.shape))
    shape = _product_shape(a, b, trans_a, trans_b, "bdot")
    return a.graph.add_node(
        NodeKind.BDOT,
        (a, b),
        shape,
        promote_types(a.value_type, b.value_type, "bdot"),
        attrs={"trans_a": bool(trans_a), "trans_b": bool(trans_b), "scale": float(scale)},
    )


def affine(
    a: Expr,
    b: Expr,
    bias: Expr,
    trans_a: bool = False,
    trans_b: bool = False,
    scale: float = 1.0,
) -> Expr:
    """``scale * op(a) @ op(b) + bias``; ``bias`` must broadcast to the product."""
    graph_of(a, b, bias, op="affine")
    a, b, bias = (expect_expr(x, "affine") for x in (a, b, bias))
    if any(d != 1 for d in b.shape[:-2]):
        raise ShapeError("affine", "leading axes of the right operand must be 1", (a.shape, b.shape))
    shape = _product_shape(a, b, trans_a, trans_b, "affine")
    if not is_broadcastable_to(bias.shape, shape):
        raise ShapeError("affine", "bias does not broadcast to the product", (bias.shape, shape))
    return a.graph.add_node(
        NodeKind.AFFINE,
        (a, b, bias),
        shape,
        promote_all((a.value_type, b.value_type, bias.value_type), "affine"),
        attrs={"trans_a": bool(trans_a), "trans_b": bool(trans_b), "scale": float(scale)},
    )


def _check_csr(shape: Sequence[int], values: Expr, indices: Expr, offsets: Expr, op: str) -> Shape:
    shape = Shape(shape)
    if shape.rank != 2:
        raise ShapeError(op, "sparse operand must be a matrix", (shape,))
    require_float(values, op)
    require_int(indices, op)
    require_int(offsets, op)
    for part in (values, indices, offsets):
        require_rank(part, 1, op, exact=True)
    if values.shape.elements() != indices.shape.elements():
        raise ShapeError(op, "values and indices differ in length", (values.shape, indices.shape))
    if offsets.shape.elements() != shape[0] + 1:
        raise ShapeError(op, f"offsets must hold rows + 1 = {shape[0] + 1} entries", (offsets.shape,))
    return shape


def csr_dot(
    a_shape: Sequence[int],
    values: Expr,
    indices: Expr,
    offsets: Expr,
    b: Expr,
    trans_a: bool = False,
) -> Expr:
    """Product ``op(S) @ b`` of a CSR matrix ``S`` of shape ``a_shape`` with a dense matrix."""
    graph_of(values, indices, offsets, b, op="csr_dot")
    values, indices, offsets, b = (expect_expr(x, "csr_dot") for x in (values, indices, offsets, b))
    a_shape = _check_csr(a_shape, values, indices, offsets, "csr_dot")
    require_rank(b, 2, "csr_dot", exact=True)
    m, k = _mat(a_shape, trans_a)
    if k != b.shape[0]:
        raise ShapeError("csr_dot", f"inner dimensions differ ({k} vs {b.shape[0]})", (a_shape, b.shape))
    return b.graph.add_node(
        NodeKind.CSR_DOT,
        (values, indices, offsets, b),
        (m, b.shape[1]),
        promote_types(values.value_type, b.value_type, "csr_dot"),
        attrs={"a_shape": tuple(a_shape), "trans_a": bool(trans_a)},
    )


def dot_csr(
    a: Expr,
    b_shape: Sequence[int],
    values: Expr,
    indices: Expr,
    offsets: Expr,
    trans_b: bool = False,
) -> Expr:
    """Product ``a @ op(S)`` of a dense matrix with a CSR matrix ``S`` of shape ``b_shape``."""
    graph_of(a, values, indices, offsets, op="dot_csr")
    a, values, indices, offsets = (expect_expr(x, "dot_csr") for x in (a, values, indices, offsets))
    b_shape = _check_csr(b_shape, values, indices, offsets, "dot_csr")
    require_rank(a, 2, "dot_csr", exact=True)
    k, n = _mat(b_shape, trans_b)
    if a.shape[1] != k:
        raise ShapeError("dot_csr", f"inner dimensions differ ({a.shape[1]} vs {k})", (a.shape, b_shape))
    return a.graph.add_node(
        NodeKind.DOT_CSR,
        (a, values, indices, offsets),
        (a.shape[0], n),
        promote_types(a.value_type, values.value_type, "dot_csr"),
        attrs={"b_shape": tuple(b_shape), "trans_b": bool(trans_b)},
    )
