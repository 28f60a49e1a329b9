"""
Activation factories.

Each activation accepts a single expression. The list forms inherited from
the original operator set (``sigmoid([x])``, ``relu([x])``, ...) accept a
one-element list and raise `NotImplementedError` for longer lists, except
`tanh`, which applies to the sum of all its inputs.
"""

from functools import reduce

from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._arithmetic import add
from ._helpers import expect_expr, single, unary

GELU_BETA = 1.702
"""Swish slope giving the sigmoid approximation of GELU."""


def sigmoid(x) -> Expr:
    return unary(NodeKind.SIGMOID, single(x, "sigmoid"))


def swish(x, beta: float = 1.0) -> Expr:
    """``x * sigmoid(beta * x)``."""
    return unary(NodeKind.SWISH, single(x, "swish"), attrs={"beta": float(beta)})


def gelu(x) -> Expr:
    """Sigmoid approximation of GELU: ``swish(x, 1.702)``."""
    return swish(x, GELU_BETA)


def tanh(*nodes) -> Expr:
    """
    ``tanh(x1 + x2 + ...)``.

    Accepts expressions as separate arguments or as one list.
    """
    if len(nodes) == 1 and not isinstance(nodes[0], Expr):
        nodes = tuple(nodes[0])
    if not nodes:
        raise ValueError("tanh: expected at least one expression")
    total = reduce(add, (expect_expr(n, "tanh") for n in nodes))
    return unary(NodeKind.TANH, total)


def relu(x) -> Expr:
    return unary(NodeKind.RELU, single(x, "relu"))


def prelu(x, alpha: float = 0.01) -> Expr:
    """``x`` for positive inputs, ``alpha * x`` otherwise."""
    return unary(NodeKind.PRELU, single(x, "prelu"), attrs={"alpha": float(alpha)})


def leakyrelu(x) -> Expr:
    return prelu(x, 0.01)
