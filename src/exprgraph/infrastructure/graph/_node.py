"""
Graph node.

A :class:`Node` is one vertex of the computation graph: one operator instance
of a fixed `NodeKind`, with an immutable shape and element type derived at
construction. Nodes reference their inputs (never exclusively) and exclusively
own their retained value and gradient buffers while they hold them.

Nodes are created only through `ExpressionGraph.add_node`, which assigns the
creation index. Inputs always have a strictly smaller index than their
consumer, so creation order is a valid topological order.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from ...domain._initializer import NodeInitializer
from ...domain._shape import Shape
from ...domain._types import ElementType
from ..storage._buffer import TensorBuffer, to_numpy_dtype
from ._context import Context
from ._kinds import NodeKind

if TYPE_CHECKING:
    from ._graph import ExpressionGraph


class Node:
    """
    One operator instance in an `ExpressionGraph`.

    Attributes
    ----------
    graph : ExpressionGraph
        Owning graph.
    id : int
        Creation index, unique within the graph.
    kind : NodeKind
        Operator tag.
    inputs : tuple[Node, ...]
        Ordered inputs.
    shape : Shape
        Output shape, fixed at construction.
    value_type : ElementType
        Output element type, fixed at construction.
    attrs : dict[str, Any]
        Kind specific parameters (axis, k, eps, closures, ...).
    trainable : bool
        True for leaves that accumulate gradients (parameters, trainable
        constants).
    requires_grad : bool
        True if gradients must be computed for this node: trainable leaves,
        and differentiable floating point nodes with at least one input that
        requires grad.
    checkpointed : bool
        Whether the value may be released early and recomputed on demand.
    """

    __slots__ = (
        "graph",
        "id",
        "kind",
        "inputs",
        "shape",
        "value_type",
        "attrs",
        "name",
        "trainable",
        "requires_grad",
        "checkpointed",
        "initializer",
        "value",
        "grad",
        "ctx",
        "released_generation",
        "lock",
        "__weakref__",
    )

    def __init__(
        self,
        graph: "ExpressionGraph",
        node_id: int,
        kind: NodeKind,
        inputs: tuple["Node", ...],
        shape: Shape,
        value_type: ElementType,
        attrs: Optional[dict[str, Any]] = None,
        name: Optional[str] = None,
        trainable: bool = False,
        initializer: Optional[NodeInitializer] = None,
        differentiable: bool = True,
    ) -> None:
        self.graph = graph
        self.id = node_id
        self.kind = kind
        self.inputs = tuple(inputs)
        self.shape = Shape(shape)
        self.value_type = ElementType.parse(value_type)
        self.attrs = dict(attrs or {})
        self.name = name
        self.trainable = bool(trainable) and kind.traits.leaf
        self.initializer = initializer
        self.checkpointed = False

        if self.trainable:
            self.requires_grad = self.value_type.is_float
        else:
            self.requires_grad = (
                kind.traits.differentiable
                and differentiable
                and self.value_type.is_float
                and any(inp.requires_grad for inp in self.inputs)
            )

        self.value: Optional[TensorBuffer] = None
        self.grad: Optional[TensorBuffer] = None
        self.ctx: Optional[Context] = None
        self.released_generation: Optional[int] = None
        self.lock = threading.Lock()

    def __repr__(self) -> str:
        label = f" '{self.name}'" if self.name else ""
        return (
            f"Node(#{self.id} {self.kind.value}{label} shape={self.shape} "
            f"type={self.value_type})"
        )

    @property
    def is_leaf(self) -> bool:
        return self.kind.traits.leaf

    @property
    def dtype(self) -> np.dtype:
        return to_numpy_dtype(self.value_type)

    def label(self) -> str:
        """Short human readable description used by debug output and DOT."""
        name = self.name or self.kind.value
        return f"{name} #{self.id} {self.shape} {self.value_type}"
