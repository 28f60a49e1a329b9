"""
Leaf kernels.

Constants and parameters have no inputs: their forward rule allocates the
leaf's array and lets the node initializer fill it. The engine evaluates a
leaf once; afterwards the value stays valid across generations until it is
overwritten with `ExpressionGraph.set_value`.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


@KernelRegistry.register(NodeKind.CONSTANT, NodeKind.PARAM, types=ALL_TYPES)
class LeafOp(NodeOp):
    @staticmethod
    def forward(ctx) -> np.ndarray:
        data = np.zeros(ctx.shape, dtype=ctx.dtype)
        init = ctx.node.initializer
        if init is not None:
            init(data, ctx.rng)
        return data

    @staticmethod
    def backward(ctx, adj, value):
        return ()
