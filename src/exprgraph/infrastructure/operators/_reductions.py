"""
Reduction factories.

Every reduction collapses one axis and keeps it with size 1, so
``sum(x, axis=1)`` of a ``[2, 3]`` input has shape ``[2, 1]``. The default
axis is 0.
"""

from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._arithmetic import sqrt as _sqrt
from ._arithmetic import square, sub
from ._helpers import expect_expr, unary


def _reduce(kind: NodeKind, x: Expr, axis: int, float_only: bool = False) -> Expr:
    x = expect_expr(x, kind.value)
    ax = x.shape.axis(axis, kind.value)
    return unary(kind, x, attrs={"axis": ax}, float_only=float_only, shape=x.shape.with_axis(ax, 1))


def sum(x: Expr, axis: int = 0) -> Expr:
    return _reduce(NodeKind.SUM, x, axis)


def mean(x: Expr, axis: int = 0) -> Expr:
    return _reduce(NodeKind.MEAN, x, axis, float_only=True)


def max(x: Expr, axis: int = 0) -> Expr:
    return _reduce(NodeKind.MAX, x, axis)


def min(x: Expr, axis: int = 0) -> Expr:
    return _reduce(NodeKind.MIN, x, axis)


def prod(x: Expr, axis: int = 0) -> Expr:
    return _reduce(NodeKind.PROD, x, axis)


def logsumexp(x: Expr, axis: int = 0) -> Expr:
    """``log(sum(exp(x), axis))`` computed with the max subtracted first."""
    return _reduce(NodeKind.LOGSUMEXP, x, axis, float_only=True)


def var(x: Expr, axis: int = 0) -> Expr:
    """Population variance: ``mean(square(x - mean(x)))``."""
    return mean(square(sub(x, mean(x, axis))), axis)


def std(x: Expr, axis: int = 0, eps: float = 0.0) -> Expr:
    """``sqrt(var(x) + eps)``."""
    return _sqrt(var(x, axis), eps)
