"""
Elementwise comparison factories.

The result holds ``1`` where the relation holds and ``0`` elsewhere, in the
promoted element type of the operands. Comparisons are not differentiable.
"""

from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._helpers import Operand, binary


def lt(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.LT, a, b)


def eq(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.EQ, a, b)


def gt(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.GT, a, b)


def ge(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.GE, a, b)


def ne(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.NE, a, b)


def le(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.LE, a, b)
