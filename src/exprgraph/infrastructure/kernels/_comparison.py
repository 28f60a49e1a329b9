"""
Comparison kernels.

Comparisons produce ``1`` where the relation holds and ``0`` elsewhere, in
the promoted element type of their operands. They are not differentiable:
both inputs receive a zero gradient.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry

_RELATIONS = {
    NodeKind.LT: np.less,
    NodeKind.EQ: np.equal,
    NodeKind.GT: np.greater,
    NodeKind.GE: np.greater_equal,
    NodeKind.NE: np.not_equal,
    NodeKind.LE: np.less_equal,
}


@KernelRegistry.register(*_RELATIONS, types=ALL_TYPES)
class CompareOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        relation = _RELATIONS[ctx.node.kind]
        return relation(a, b).astype(ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return None, None
