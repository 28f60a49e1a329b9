"""
exprgraph: a computation-graph and reverse-mode autodiff engine for tensor
expressions, with NumPy CPU kernels.

Operators build graph nodes instead of computing values:

    >>> import exprgraph as eg
    >>> g = eg.ExpressionGraph()
    >>> x = g.param("x", (2, 3), init=eg.initializers.uniform(-1, 1))
    >>> loss = eg.sum(eg.sum(eg.square(x), axis=1), axis=0)
    >>> g.forward(loss)
    >>> g.backward(loss)
    >>> g.gradient(x)        # == 2 * x
"""

import logging

from .domain import (
    ALL_TYPES,
    FLOAT_TYPES,
    INDEX_TYPE,
    INT_TYPES,
    MAX_RANK,
    AxisError,
    BufferAllocationError,
    Device,
    DeviceNotSupportedError,
    ElementType,
    GraphMismatchError,
    GraphUsageError,
    KernelNotFoundError,
    NodeInitializer,
    NodeOp,
    RecomputationError,
    Shape,
    ShapeError,
    TypePromotionError,
    broadcast_shape,
    broadcast_shapes,
    promote_types,
)
from .infrastructure import initializers
from .infrastructure.graph import Expr, Expr2, ExpressionGraph, GraphConfig, NodeKind
from .infrastructure.initializers import Initializer
from .infrastructure.kernels import KernelRegistry
from .infrastructure.operators import *  # noqa: F401,F403
from .infrastructure.operators import __all__ as _operators_all
from .infrastructure.storage import BufferPool, TensorBuffer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ALL_TYPES",
    "AxisError",
    "BufferAllocationError",
    "BufferPool",
    "Device",
    "DeviceNotSupportedError",
    "ElementType",
    "Expr",
    "Expr2",
    "ExpressionGraph",
    "FLOAT_TYPES",
    "GraphConfig",
    "GraphMismatchError",
    "GraphUsageError",
    "INDEX_TYPE",
    "INT_TYPES",
    "Initializer",
    "KernelNotFoundError",
    "KernelRegistry",
    "MAX_RANK",
    "NodeInitializer",
    "NodeKind",
    "NodeOp",
    "RecomputationError",
    "Shape",
    "ShapeError",
    "TensorBuffer",
    "TypePromotionError",
    "broadcast_shape",
    "broadcast_shapes",
    "initializers",
    "promote_types",
] + list(_operators_all)
