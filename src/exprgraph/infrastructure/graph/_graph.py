"""
Expression graph engine.

`ExpressionGraph` owns the nodes created by operator factories and runs the
two traversals over them:

- forward: evaluates the dependency closure of a target in increasing
  creation index, skipping nodes whose value is valid for the current
  generation;
- backward: seeds the target's gradient and visits the closure in decreasing
  creation index, adding every input contribution (reduced over broadcast
  axes) into the input's gradient buffer.

Values and gradients live in `TensorBuffer` objects handed out by the graph's
`BufferPool`. A non-leaf value is valid only for the generation it was
computed in; leaves (constants and parameters) stay valid once initialized.
The checkpoint controller may release marked values early and reconstruct
them when backward needs them.

Usage example
-------------
    graph = ExpressionGraph(seed=1)
    W = graph.param("W", (4, 3), init=glorot_uniform())
    x = graph.constant((2, 4), init=np.ones((2, 4)))
    loss = sum(sum(dot(x, W), axis=1), axis=0)
    graph.forward(loss)
    graph.backward(loss)
    dW = graph.gradient(W)
"""

from __future__ import annotations

import logging
import warnings
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional, Union

import numpy as np

from ...domain._errors import GraphMismatchError, GraphUsageError, ShapeError
from ...domain._initializer import NodeInitializer
from ...domain._shape import Shape, ShapeLike
from ...domain._types import INDEX_TYPE, ElementType
from ...domain.device._device import Device
from ..initializers import as_initializer, dropout, ones, zeros
from ..kernels._broadcast import sum_to_shape
from ..kernels._registry import KernelRegistry
from ..storage._buffer import TensorBuffer
from ..storage._pool import BufferPool
from ._checkpoint import CheckpointController
from ._config import GraphConfig
from ._context import Context
from ._expr import Expr
from ._kinds import NodeKind
from ._node import Node

logger = logging.getLogger(__name__)


class ExpressionGraph:
    """
    Directed acyclic graph of tensor expressions.

    Parameters
    ----------
    config : Optional[GraphConfig]
        Graph configuration. Defaults to ``GraphConfig()``.
    **overrides
        Individual `GraphConfig` fields overriding ``config``.

    Notes
    -----
    - Construction (operator calls) must happen on one thread at a time.
    - Creation indices are never reused, even across `clear()`.
    """

    def __init__(self, config: Optional[GraphConfig] = None, **overrides: Any) -> None:
        config = config if config is not None else GraphConfig()
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config
        self.device = Device(config.device)
        self.pool = BufferPool(budget=config.memory_budget, reuse=config.reuse_buffers)
        self.rng = np.random.default_rng(config.seed)

        self._nodes: list[Node] = []
        self._counter = 0
        self._generation = 0
        self._params: dict[str, Node] = {}
        self._scalar_cache: dict[tuple, Expr] = {}
        self._dropout_cache: dict[tuple, Expr] = {}
        self._checkpoints = CheckpointController(self)

    def __repr__(self) -> str:
        return (
            f"ExpressionGraph(nodes={len(self._nodes)}, params={len(self._params)}, "
            f"generation={self._generation}, device='{self.device}')"
        )

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes)

    @property
    def checkpoints(self) -> CheckpointController:
        return self._checkpoints

    # ----------------------------
    # Construction
    # ----------------------------
    def add_node(
        self,
        kind: NodeKind,
        inputs: Iterable[Expr],
        shape: ShapeLike,
        value_type: Any,
        attrs: Optional[dict[str, Any]] = None,
        name: Optional[str] = None,
        trainable: bool = False,
        initializer: Optional[NodeInitializer] = None,
        differentiable: bool = True,
    ) -> Expr:
        """
        Validate and link one node; the only mutation performed by operator
        factories.

        Raises
        ------
        GraphMismatchError
            If an input is not an `Expr` of this graph.
        ValueError
            If the number of inputs does not match the kind's arity.
        DeviceNotSupportedError
            If no kernel exists for the kind, element type and device.
        """
        input_nodes = tuple(self._node_of(x, kind.value) for x in inputs)
        traits = kind.traits
        n = len(input_nodes)
        if n < traits.min_inputs or (traits.max_inputs is not None and n > traits.max_inputs):
            bound = "any" if traits.max_inputs is None else traits.max_inputs
            raise ValueError(
                f"{kind.value}: expected {traits.min_inputs}..{bound} inputs, got {n}"
            )
        shape = Shape(shape)
        value_type = ElementType.parse(value_type)
        KernelRegistry.lookup(kind, value_type, self.device)

        node = Node(
            self,
            self._counter,
            kind,
            input_nodes,
            shape,
            value_type,
            attrs=attrs,
            name=name,
            trainable=trainable,
            initializer=initializer,
            differentiable=differentiable,
        )
        self._nodes.append(node)
        self._counter += 1
        logger.debug("created %r", node)
        return Expr(node)

    def _node_of(self, x: Any, op: str = "graph") -> Node:
        if not isinstance(x, Expr):
            raise GraphMismatchError(op, f"expected an Expr, got {type(x).__name__}")
        if x.graph is not self:
            raise GraphMismatchError(op)
        return x.node

    # ----------------------------
    # Leaves
    # ----------------------------
    def constant(
        self,
        shape: ShapeLike,
        init: Any = None,
        value_type: Any = None,
        name: Optional[str] = None,
        trainable: bool = False,
    ) -> Expr:
        """
        Create a constant leaf.

        Parameters
        ----------
        shape : ShapeLike
            Leaf shape.
        init : NodeInitializer | str | scalar | array-like, optional
            Contents. Defaults to zeros. Array-likes must hold exactly
            ``prod(shape)`` elements.
        value_type : optional
            Element type; defaults to ``config.default_type``.
        trainable : bool
            If True the constant accumulates gradients like a parameter.
        """
        shape = Shape(shape)
        init = zeros() if init is None else init
        _check_init_size(init, shape, "constant")
        return self.add_node(
            NodeKind.CONSTANT,
            (),
            shape,
            self._type_or_default(value_type),
            name=name,
            trainable=trainable,
            initializer=as_initializer(init),
        )

    def param(
        self,
        name: str,
        shape: ShapeLike,
        init: Any = None,
        value_type: Any = None,
        fixed: bool = False,
    ) -> Expr:
        """
        Create or fetch the named parameter.

        A repeated name returns the existing parameter; requesting it with a
        different shape raises `ShapeError`.
        """
        shape = Shape(shape)
        existing = self._params.get(name)
        if existing is not None:
            if existing.shape != shape:
                raise ShapeError(
                    "param", f"parameter '{name}' already exists with another shape",
                    (existing.shape, shape),
                )
            return Expr(existing)

        init = zeros() if init is None else init
        _check_init_size(init, shape, "param")
        expr = self.add_node(
            NodeKind.PARAM,
            (),
            shape,
            self._type_or_default(value_type),
            name=name,
            trainable=not fixed,
            initializer=as_initializer(init),
        )
        self._params[name] = expr.node
        return expr

    def get(self, name: str) -> Optional[Expr]:
        """Return the parameter called ``name``, or None."""
        node = self._params.get(name)
        return Expr(node) if node is not None else None

    @property
    def params(self) -> tuple[Expr, ...]:
        return tuple(Expr(n) for n in sorted(self._params.values(), key=lambda n: n.id))

    def scalar(self, value: Union[int, float], value_type: Any = None, shape: ShapeLike = ()) -> Expr:
        """
        Return a cached constant filled with ``value``.

        Equal ``(value, shape, type)`` triples share one node until `clear()`.
        """
        value_type = self._type_or_default(value_type)
        shape = Shape(shape)
        key = (value, shape, value_type)
        cached = self._scalar_cache.get(key)
        if cached is None:
            cached = self.constant(shape, init=value, value_type=value_type)
            self._scalar_cache[key] = cached
        return cached

    def zeros(self, shape: ShapeLike, value_type: Any = None) -> Expr:
        return self.constant(shape, init=zeros(), value_type=value_type)

    def ones(self, shape: ShapeLike, value_type: Any = None) -> Expr:
        return self.constant(shape, init=ones(), value_type=value_type)

    def indices(self, values: Any, shape: Optional[ShapeLike] = None) -> Expr:
        """Constant of the index element type holding ``values``."""
        arr = np.asarray(values)
        if arr.size and (np.any(arr < 0) or not np.all(np.equal(np.mod(arr, 1), 0))):
            raise ValueError("indices must be non-negative integers")
        shape = Shape(arr.shape if shape is None else shape)
        return self.constant(shape, init=arr.astype(np.int64), value_type=INDEX_TYPE)

    def dropout_mask(
        self,
        prob: float,
        shape: ShapeLike,
        value_type: Any = None,
        shared: bool = False,
    ) -> Expr:
        """
        Constant Bernoulli keep mask with values ``0`` and ``1/(1-prob)``.

        With ``shared=True`` equal ``(prob, shape, type)`` requests reuse one
        mask until `clear()`.
        """
        value_type = self._type_or_default(value_type)
        shape = Shape(shape)
        if not shared:
            return self.constant(shape, init=dropout(prob), value_type=value_type)
        key = (float(prob), shape, value_type)
        mask = self._dropout_cache.get(key)
        if mask is None:
            mask = self.constant(shape, init=dropout(prob), value_type=value_type)
            self._dropout_cache[key] = mask
        return mask

    def _type_or_default(self, value_type: Any) -> ElementType:
        if value_type is None:
            return self.config.default_type
        return ElementType.parse(value_type)

    # ----------------------------
    # Forward
    # ----------------------------
    def is_valid(self, node: Node) -> bool:
        """Whether ``node`` holds a value usable in the current generation."""
        value = node.value
        if value is None:
            return False
        return node.is_leaf or value.generation == self._generation

    def _closure(self, target: Optional[Node]) -> list[Node]:
        if target is None:
            return list(self._nodes)
        seen: dict[int, Node] = {}
        stack = [target]
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen[node.id] = node
            stack.extend(inp for inp in node.inputs if inp.id not in seen)
        return sorted(seen.values(), key=lambda n: n.id)

    def _stale(self, target: Optional[Node]) -> list[Node]:
        """
        Nodes a forward pass must compute: the closure of ``target`` cut off at
        nodes that already hold a valid value.

        Without a target every node is a root, except checkpointed values
        released in this generation; those are only recomputed when a stale
        consumer needs them.
        """
        if target is None:
            roots = [
                n for n in self._nodes
                if not (n.checkpointed and n.released_generation == self._generation)
            ]
        else:
            roots = [target]
        seen: dict[int, Node] = {}
        stack = [n for n in roots if not self.is_valid(n)]
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen[node.id] = node
            stack.extend(inp for inp in node.inputs if inp.id not in seen and not self.is_valid(inp))
        return sorted(seen.values(), key=lambda n: n.id)

    def compute(self, node: Node) -> TensorBuffer:
        """
        Run the forward kernel of ``node`` and publish its value.

        Inputs must already hold valid values. The kernel result is computed
        into a fresh array and copied into the node's pooled buffer only
        after the kernel returns.
        """
        op = KernelRegistry.lookup(node.kind, node.value_type, self.device)
        ctx = Context(node, rng=self.rng)
        args = [inp.value.data for inp in node.inputs]
        out = np.asarray(op.forward(ctx, *args))
        if out.shape != tuple(node.shape):
            raise ShapeError(
                node.kind.value,
                "kernel result does not match the node shape",
                (out.shape, node.shape),
            )

        buf = node.value
        if buf is None:
            buf = self.pool.allocate(node.shape, node.value_type, self._generation, owner=node.id)
        buf.write(out)
        buf.generation = self._generation
        node.ctx = ctx
        node.value = buf
        node.released_generation = None
        return buf

    def _forward_node(self, node: Node) -> None:
        if not self.is_valid(node):
            self.compute(node)
        self._checkpoints.consumed(node)

    def forward(self, target: Optional[Expr] = None) -> Optional[TensorBuffer]:
        """
        Evaluate ``target`` (or every node) and return its value buffer.

        Nodes already valid for the current generation are not recomputed,
        so calling `forward` twice without intervening changes does no work.
        Released checkpointed values are recomputed only when a node that
        still has to be computed reads them.
        """
        tnode = None if target is None else self._node_of(target, "forward")
        order = self._stale(tnode)
        self._checkpoints.begin_forward(order, tnode)

        if self.config.workers > 1 and len(order) > 1:
            self._run_levels(self._forward_levels(order), self._forward_node)
        else:
            for node in order:
                self._forward_node(node)

        logger.debug(
            "forward: %d stale nodes for %s (generation %d)",
            len(order),
            "graph" if tnode is None else f"#{tnode.id}",
            self._generation,
        )
        return None if tnode is None else tnode.value

    evaluate = forward

    @staticmethod
    def _forward_levels(order: list[Node]) -> list[list[Node]]:
        depth: dict[int, int] = {}
        levels: dict[int, list[Node]] = defaultdict(list)
        for node in order:
            d = 1 + max((depth[i.id] for i in node.inputs if i.id in depth), default=-1)
            depth[node.id] = d
            levels[d].append(node)
        return [levels[d] for d in sorted(levels)]

    @staticmethod
    def _backward_levels(order: list[Node]) -> list[list[Node]]:
        depth: dict[int, int] = {}
        levels: dict[int, list[Node]] = defaultdict(list)
        for node in reversed(order):
            d = depth.get(node.id, 0)
            levels[d].append(node)
            for inp in node.inputs:
                depth[inp.id] = max(depth.get(inp.id, 0), d + 1)
        return [levels[d] for d in sorted(levels)]

    def _run_levels(self, levels: list[list[Node]], step: Callable[[Node], None]) -> None:
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            for level in levels:
                # leaf initializers share the graph generator, which is not thread safe
                leaves = [n for n in level if n.is_leaf]
                for node in leaves:
                    step(node)
                rest = [n for n in level if not n.is_leaf]
                if len(rest) == 1:
                    step(rest[0])
                elif rest:
                    list(pool.map(step, rest))

    # ----------------------------
    # Backward
    # ----------------------------
    def backward(self, target: Optional[Expr] = None, seed: Any = None) -> None:
        """
        Propagate gradients from ``target`` (default: the last created node).

        Parameters
        ----------
        target : Optional[Expr]
            Expression to differentiate. Must be forward evaluated.
        seed : array-like, optional
            Initial gradient of the target. Required unless the target holds
            exactly one element; must match the target shape.

        Raises
        ------
        GraphUsageError
            If the target was not evaluated, or the seed is missing or has the
            wrong shape.
        """
        if target is None:
            if not self._nodes:
                raise GraphUsageError("backward() called on an empty graph")
            tnode = self._nodes[-1]
        else:
            tnode = self._node_of(target, "backward")

        if not self.is_valid(tnode):
            raise GraphUsageError(
                f"backward() target #{tnode.id} has not been evaluated in the "
                f"current generation; call forward() first"
            )

        if seed is None:
            if tnode.shape.elements() != 1:
                raise GraphUsageError(
                    f"backward() needs a seed gradient for non-scalar target of "
                    f"shape {tnode.shape}"
                )
            seed_arr = np.ones(tnode.shape, dtype=tnode.dtype)
        else:
            seed_arr = np.asarray(seed)
            if seed_arr.shape != tuple(tnode.shape):
                raise GraphUsageError(
                    f"seed shape {list(seed_arr.shape)} does not match target "
                    f"shape {tnode.shape}"
                )

        for node in self._nodes:
            if not node.is_leaf and node.grad is not None:
                self.pool.release(node.grad)
                node.grad = None

        if not tnode.requires_grad:
            logger.debug("backward: target #%d does not require grad", tnode.id)
            return

        order = self._closure(tnode)
        self._accumulate(tnode, seed_arr)

        def step(node: Node) -> None:
            self._backward_node(node)
            self._checkpoints.after_backward(node, tnode)

        if self.config.workers > 1 and len(order) > 1:
            self._run_levels(self._backward_levels(order), step)
        else:
            for node in reversed(order):
                step(node)

        logger.debug("backward: %d nodes from target #%d", len(order), tnode.id)

    def _backward_node(self, node: Node) -> None:
        if node.is_leaf or not node.requires_grad or node.grad is None:
            return
        if not any(inp.requires_grad for inp in node.inputs):
            return

        value = self._checkpoints.ensure_value(node)
        args = [self._checkpoints.ensure_value(inp).data for inp in node.inputs]
        op = KernelRegistry.lookup(node.kind, node.value_type, self.device)
        grads = op.backward(node.ctx, node.grad.data, value.data, *args)

        for inp, g in zip(node.inputs, grads):
            if g is None or not inp.requires_grad:
                continue
            self._accumulate(inp, sum_to_shape(np.asarray(g), inp.shape))

    def _accumulate(self, node: Node, grad: np.ndarray) -> None:
        with node.lock:
            if node.grad is None:
                buf = self.pool.allocate(node.shape, node.value_type, self._generation, owner=node.id)
                buf.write(grad)
                node.grad = buf
            else:
                np.add(node.grad.data, grad, out=node.grad.data, casting="same_kind")

    # ----------------------------
    # Access
    # ----------------------------
    def value(self, x: Expr) -> np.ndarray:
        """
        Return a read-only view of the value of ``x``.

        Raises
        ------
        GraphUsageError
            If ``x`` has no valid value (not evaluated, invalidated by a new
            generation, or released by checkpointing).
        """
        node = self._node_of(x, "value")
        if not self.is_valid(node):
            raise GraphUsageError(f"node #{node.id} has no valid value; call forward() first")
        return node.value.read()

    def gradient(self, x: Expr) -> np.ndarray:
        """Return a copy of the accumulated gradient of ``x`` (zeros if none)."""
        node = self._node_of(x, "gradient")
        grad = node.grad
        if grad is None:
            return np.zeros(node.shape, dtype=node.dtype)
        return grad.data.copy()

    def set_value(self, x: Expr, array: Any) -> None:
        """
        Overwrite the value of a leaf and start a new generation, so every
        dependent intermediate is recomputed by the next forward pass.
        """
        node = self._node_of(x, "set_value")
        if not node.is_leaf:
            raise GraphUsageError(f"set_value() requires a leaf, got {node.kind.value} #{node.id}")
        arr = np.asarray(array)
        if arr.shape != tuple(node.shape):
            raise ShapeError("set_value", "shape mismatch", (arr.shape, node.shape))
        self._generation += 1
        if node.value is None:
            node.value = self.pool.allocate(node.shape, node.value_type, self._generation, owner=node.id)
        node.value.write(arr)
        node.value.generation = self._generation
        node.ctx = Context(node, rng=self.rng)

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def checkpoint(self, x: Expr) -> Expr:
        """Mark ``x`` as releasable after forward consumption."""
        node = self._node_of(x, "checkpoint")
        if node.is_leaf:
            warnings.warn(
                f"checkpoint() on leaf node #{node.id} has no effect; leaves are never released",
                RuntimeWarning,
                stacklevel=2,
            )
            return x
        node.checkpointed = True
        return x

    def new_generation(self) -> int:
        """Invalidate every intermediate value and return the new generation."""
        self._generation += 1
        for node in self._nodes:
            if not node.is_leaf and node.value is not None:
                self.pool.release(node.value)
                node.value = None
                node.ctx = None
        self._checkpoints.reset()
        logger.debug("new generation %d", self._generation)
        return self._generation

    def zero_grad(self) -> None:
        """Drop every gradient buffer (leaf accumulators included)."""
        for node in self._nodes:
            if node.grad is not None:
                self.pool.release(node.grad)
                node.grad = None

    def clear(self) -> None:
        """
        Drop every non-parameter node, empty the scalar and dropout caches,
        zero gradients and start a new generation. Parameters keep their
        values and creation indices.
        """
        self.zero_grad()
        kept = []
        for node in self._nodes:
            if node.kind is NodeKind.PARAM:
                kept.append(node)
                continue
            if node.value is not None:
                self.pool.release(node.value)
                node.value = None
            node.ctx = None
        self._nodes = kept
        self._scalar_cache.clear()
        self._dropout_cache.clear()
        self._checkpoints.reset()
        self._generation += 1
        logger.debug("cleared graph: %d parameters kept", len(kept))

    # ----------------------------
    # Introspection
    # ----------------------------
    def graphviz(self) -> str:
        """Return the graph as Graphviz DOT text."""
        lines = ["digraph exprgraph {", '  rankdir="BT";']
        for node in self._nodes:
            style = ""
            if node.kind is NodeKind.PARAM:
                style = ", shape=box, style=filled, fillcolor=orange"
            elif node.is_leaf:
                style = ", shape=box"
            elif node.checkpointed:
                style = ", style=dashed"
            label = node.label().replace('"', "'")
            lines.append(f'  n{node.id} [label="{label}"{style}];')
        for node in self._nodes:
            for inp in node.inputs:
                lines.append(f"  n{inp.id} -> n{node.id};")
        lines.append("}")
        return "\n".join(lines)

    def memory_stats(self) -> dict:
        """Pool statistics plus the number of live values and gradients."""
        stats = self.pool.stats()
        stats["nodes"] = len(self._nodes)
        stats["values"] = sum(1 for n in self._nodes if n.value is not None)
        stats["gradients"] = sum(1 for n in self._nodes if n.grad is not None)
        return stats


def _check_init_size(init: Any, shape: Shape, op: str) -> None:
    # array-like contents must fill the leaf exactly
    if isinstance(init, (NodeInitializer, str)) or np.ndim(init) == 0:
        return
    size = np.size(init)
    if size != shape.elements():
        raise ShapeError(
            op,
            f"{size} values do not fill {shape.elements()} elements",
            (np.shape(init), shape),
        )
