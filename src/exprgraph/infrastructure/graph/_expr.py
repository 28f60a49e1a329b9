"""
Expression handles.

`Expr` is the handle returned by every operator factory. It shares ownership
of a `Node`: many handles may reference one node, and handle equality and
hashing follow node identity, so a node consumed by several operators appears
once in the graph and receives the *sum* of their gradients.

`Expr2` is the pair returned by multi-output operators (top-k values and
indices). Each element is an independent handle for graph traversal.

Notes
-----
Because ``==`` means "same node", elementwise comparison is spelled with the
functions `lt`, `eq`, `gt`, ... rather than Python comparison operators.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple, Union

import numpy as np

from ...domain._shape import Shape
from ...domain._types import ElementType
from ._node import Node

if TYPE_CHECKING:
    from ._graph import ExpressionGraph

Number = Union[int, float]


class Expr:
    """
    Shared handle to a graph node.

    Parameters
    ----------
    node : Node
        The referenced node.
    """

    __slots__ = ("_node",)

    def __init__(self, node: Node) -> None:
        if not isinstance(node, Node):
            raise TypeError(f"Expr expects a Node, got {type(node)!r}")
        self._node = node

    @property
    def node(self) -> Node:
        return self._node

    @property
    def graph(self) -> "ExpressionGraph":
        return self._node.graph

    @property
    def id(self) -> int:
        return self._node.id

    @property
    def shape(self) -> Shape:
        return self._node.shape

    @property
    def value_type(self) -> ElementType:
        return self._node.value_type

    @property
    def name(self):
        return self._node.name

    @property
    def trainable(self) -> bool:
        return self._node.trainable

    @property
    def requires_grad(self) -> bool:
        return self._node.requires_grad

    def val(self) -> np.ndarray:
        """Forward value (read-only view). See `ExpressionGraph.value`."""
        return self._node.graph.value(self)

    def grad(self) -> np.ndarray:
        """Accumulated gradient (copy). See `ExpressionGraph.gradient`."""
        return self._node.graph.gradient(self)

    def item(self) -> float:
        """Return the single element of a one-element expression."""
        v = self.val()
        if v.size != 1:
            raise ValueError(f"item() requires a single element, got shape {list(v.shape)}")
        return v.reshape(()).item()

    def __repr__(self) -> str:
        return f"Expr({self._node!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expr):
            return NotImplemented
        return self._node is other._node

    def __hash__(self) -> int:
        return hash(id(self._node))

    def __bool__(self) -> bool:
        return True

    # ----------------------------
    # Arithmetic sugar
    # ----------------------------
    def __add__(self, other: Union["Expr", Number]) -> "Expr":
        from ..operators._arithmetic import add

        return add(self, other)

    def __radd__(self, other: Number) -> "Expr":
        from ..operators._arithmetic import add

        return add(other, self)

    def __sub__(self, other: Union["Expr", Number]) -> "Expr":
        from ..operators._arithmetic import sub

        return sub(self, other)

    def __rsub__(self, other: Number) -> "Expr":
        from ..operators._arithmetic import sub

        return sub(other, self)

    def __mul__(self, other: Union["Expr", Number]) -> "Expr":
        from ..operators._arithmetic import mul

        return mul(self, other)

    def __rmul__(self, other: Number) -> "Expr":
        from ..operators._arithmetic import mul

        return mul(other, self)

    def __truediv__(self, other: Union["Expr", Number]) -> "Expr":
        from ..operators._arithmetic import div

        return div(self, other)

    def __rtruediv__(self, other: Number) -> "Expr":
        from ..operators._arithmetic import div

        return div(other, self)

    def __neg__(self) -> "Expr":
        from ..operators._arithmetic import neg

        return neg(self)

    def __matmul__(self, other: "Expr") -> "Expr":
        from ..operators._linalg import dot

        return dot(self, other)


class Expr2(NamedTuple):
    """Pair of expressions returned by multi-output operators."""

    values: Expr
    indices: Expr


def get(pair: Expr2, index: int) -> Expr:
    """Return element ``index`` (0 or 1) of a paired handle."""
    if index not in (0, 1, -1, -2):
        raise IndexError(f"Expr2 index out of range: {index}")
    return pair[index]
