"""
Elementwise math factories.

Binary factories accept two expressions, or one expression and a Python
number; the number becomes a cached rank-0 constant of the expression's
element type. Operands broadcast right-aligned and promote losslessly.
"""

from typing import Sequence, Union

from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._helpers import Operand, binary, single, unary


def add(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.PLUS, a, b)


def sub(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.MINUS, a, b)


def mul(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.MULT, a, b)


def div(a: Operand, b: Operand) -> Expr:
    """Elementwise true division; integer operands are rejected by the kernel set."""
    return binary(NodeKind.DIV, a, b)


def plus(nodes: Union[Expr, Sequence[Expr]]) -> Expr:
    """
    Identity on a one-element list.

    Summing several expressions this way is not implemented; use `add` or
    the ``+`` operator.
    """
    return single(nodes, "plus")


def neg(x: Expr) -> Expr:
    return unary(NodeKind.NEG, x, float_only=False)


def exp(x: Expr) -> Expr:
    return unary(NodeKind.EXP, x)


def log(x: Expr) -> Expr:
    return unary(NodeKind.LOG, x)


def sin(x: Expr) -> Expr:
    return unary(NodeKind.SIN, x)


def cos(x: Expr) -> Expr:
    return unary(NodeKind.COS, x)


def tan(x: Expr) -> Expr:
    return unary(NodeKind.TAN, x)


def sqrt(x: Expr, eps: float = 0.0) -> Expr:
    """``sqrt(x + eps)``."""
    return unary(NodeKind.SQRT, x, attrs={"eps": float(eps)})


def square(x: Expr) -> Expr:
    return unary(NodeKind.SQUARE, x, float_only=False)


def abs(x: Expr) -> Expr:
    return unary(NodeKind.ABS, x, float_only=False)


def logaddexp(a: Operand, b: Operand) -> Expr:
    """``log(exp(a) + exp(b))`` computed without overflow."""
    return binary(NodeKind.LOGADDEXP, a, b)


def maximum(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.MAXIMUM, a, b)


def minimum(a: Operand, b: Operand) -> Expr:
    return binary(NodeKind.MINIMUM, a, b)
