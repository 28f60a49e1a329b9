"""
Normalizer, loss and dropout factories.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from ...domain._errors import ShapeError
from ...domain._shape import ShapeLike
from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._arithmetic import add, div, log, mul, neg, sub
from ._helpers import expect_expr, graph_of, require_float, require_int, unary
from ._indexing import gather
from ._reductions import mean, sum
from ._shape_ops import cast, reshape

MASK_FILL = -99999999.0
"""Additive logit for masked positions in `softmax`."""


def softmax(x: Expr, mask: Optional[Expr] = None, axis: int = -1) -> Expr:
    """
    Softmax along ``axis``.

    With ``mask`` (1 = keep, 0 = drop, broadcastable to ``x``) masked logits
    are pushed to a large negative value before normalizing.
    """
    x = expect_expr(x, "softmax")
    if mask is not None:
        graph_of(x, mask, op="softmax")
        mask = cast(expect_expr(mask, "softmax"), x.value_type)
        x = add(x, mul(sub(1.0, mask), MASK_FILL))
    ax = x.shape.axis(axis, "softmax")
    return unary(NodeKind.SOFTMAX, x, attrs={"axis": ax})


def logsoftmax(x: Expr, axis: int = -1) -> Expr:
    x = expect_expr(x, "logsoftmax")
    return unary(NodeKind.LOGSOFTMAX, x, attrs={"axis": x.shape.axis(axis, "logsoftmax")})


def cross_entropy(
    logits: Expr,
    indices: Expr,
    label_smoothing: float = 0.0,
    output_type: Any = None,
) -> Expr:
    """
    Per-row cross entropy of ``logits`` against integer labels.

    Parameters
    ----------
    logits : Expr
        Shape ``[..., C]``.
    indices : Expr
        Integer labels, one per row (``prod(shape[:-1])`` elements).
    label_smoothing : float
        Mixes in ``-mean(logsoftmax(logits))`` with this weight.
    output_type : optional
        Element type of the result; defaults to the logits' type.

    Returns
    -------
    Expr
        Shape ``[..., 1]``.
    """
    logits = expect_expr(logits, "cross_entropy")
    indices = expect_expr(indices, "cross_entropy")
    graph_of(logits, indices, op="cross_entropy")
    require_float(logits, "cross_entropy")
    require_int(indices, "cross_entropy")
    if logits.shape.rank < 1:
        raise ShapeError("cross_entropy", "logits need at least one axis", (logits.shape,))
    out_shape = logits.shape.with_axis(-1, 1)
    if indices.shape.elements() != out_shape.elements():
        raise ShapeError(
            "cross_entropy", "expected one label per row", (logits.shape, indices.shape)
        )

    ce = logits.graph.add_node(NodeKind.CROSS_ENTROPY, (logits, indices), out_shape, logits.value_type)
    if label_smoothing:
        smooth = neg(mean(logsoftmax(logits), axis=-1))
        ce = add(mul(ce, 1.0 - label_smoothing), mul(smooth, float(label_smoothing)))
    if output_type is not None:
        ce = cast(ce, output_type)
    return ce


def unlikelihood(logits: Expr, indices: Expr) -> Expr:
    """``-log(1 - softmax(logits)[label])`` per row, shape ``[..., 1]``."""
    logits = expect_expr(logits, "unlikelihood")
    indices = expect_expr(indices, "unlikelihood")
    out_shape = logits.shape.with_axis(-1, 1)
    if indices.shape.elements() != out_shape.elements():
        raise ShapeError("unlikelihood", "expected one label per row", (logits.shape, indices.shape))
    probs = sub(1.0, softmax(logits))
    return neg(log(gather(probs, -1, reshape(indices, out_shape))))


def scalar_product(a: Expr, b: Expr, axis: int = 0) -> Expr:
    """``sum(a * b, axis)``."""
    return sum(mul(a, b), axis)


def weighted_average(x: Expr, weights: Expr, axis: int = 0) -> Expr:
    """``sum(x * weights, axis) / sum(weights, axis)``."""
    return div(sum(mul(x, weights), axis), sum(weights, axis))


def dropout(x: Expr, mask: Union[Expr, float], shape: Optional[ShapeLike] = None) -> Expr:
    """
    Multiply by a dropout mask.

    ``mask`` is either a mask expression or a drop probability, in which case
    a fresh keep mask of ``shape`` (default: the shape of ``x``) is drawn.
    A probability of 0 returns ``x``.
    """
    x = expect_expr(x, "dropout")
    if isinstance(mask, Expr):
        return mul(x, mask)
    prob = float(mask)
    if prob == 0.0:
        return x
    m = x.graph.dropout_mask(prob, x.shape if shape is None else shape, x.value_type)
    return mul(x, m)
