from ._kinds import KIND_TRAITS, KindTraits, NodeKind
from ._context import Context
from ._node import Node
from ._expr import Expr, Expr2, get
from ._config import GraphConfig
from ._checkpoint import CheckpointController
from ._graph import ExpressionGraph

__all__ = [
    "CheckpointController",
    "Context",
    "Expr",
    "Expr2",
    "ExpressionGraph",
    "GraphConfig",
    "KIND_TRAITS",
    "KindTraits",
    "Node",
    "NodeKind",
    "get",
]
