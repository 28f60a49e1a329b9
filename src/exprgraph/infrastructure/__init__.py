from .graph import Expr, Expr2, ExpressionGraph, GraphConfig, NodeKind
from .initializers import Initializer
from .kernels import KernelRegistry
from .storage import BufferPool, TensorBuffer

__all__ = [
    "BufferPool",
    "Expr",
    "Expr2",
    "ExpressionGraph",
    "GraphConfig",
    "Initializer",
    "KernelRegistry",
    "NodeKind",
    "TensorBuffer",
]
