"""
Reduction kernels (CPU, NumPy).

Every reduction collapses one axis (``attrs["axis"]``, already normalized)
and keeps it with size 1, so the output has the input's rank. Backward rules
broadcast the output gradient back across the collapsed axis:

- ``sum``: unchanged;
- ``mean``: divided by the axis length;
- ``max`` / ``min``: split evenly between the positions equal to the
  extreme;
- ``prod``: multiplied by the product of the *other* elements (computed
  without division so zeros are handled);
- ``logsumexp``: multiplied by the softmax along the axis.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


@KernelRegistry.register(NodeKind.SUM, types=ALL_TYPES)
class SumOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.sum(x, axis=ctx.attrs["axis"], keepdims=True, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (np.broadcast_to(adj, x.shape),)


@KernelRegistry.register(NodeKind.MEAN)
class MeanOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.mean(x, axis=ctx.attrs["axis"], keepdims=True, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, x):
        n = x.shape[ctx.attrs["axis"]]
        return (np.broadcast_to(adj / n, x.shape),)


class _ExtremeOp(NodeOp):
    reducer = staticmethod(np.max)

    @classmethod
    def forward(cls, ctx, x):
        return cls.reducer(x, axis=ctx.attrs["axis"], keepdims=True)

    @staticmethod
    def backward(ctx, adj, value, x):
        hit = x == value
        ties = np.sum(hit, axis=ctx.attrs["axis"], keepdims=True)
        return ((adj * hit / ties).astype(adj.dtype, copy=False),)


@KernelRegistry.register(NodeKind.MAX, types=ALL_TYPES)
class MaxOp(_ExtremeOp):
    reducer = staticmethod(np.max)


@KernelRegistry.register(NodeKind.MIN, types=ALL_TYPES)
class MinOp(_ExtremeOp):
    reducer = staticmethod(np.min)


def _exclusive_prod(x: np.ndarray, axis: int) -> np.ndarray:
    # product of all elements along `axis` except the one at each position
    moved = np.moveaxis(x, axis, -1)
    ones = np.ones(moved.shape[:-1] + (1,), dtype=moved.dtype)
    left = np.cumprod(np.concatenate([ones, moved[..., :-1]], axis=-1), axis=-1)
    right = np.cumprod(np.concatenate([ones, moved[..., :0:-1]], axis=-1), axis=-1)[..., ::-1]
    return np.moveaxis(left * right, -1, axis)


@KernelRegistry.register(NodeKind.PROD, types=ALL_TYPES)
class ProdOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.prod(x, axis=ctx.attrs["axis"], keepdims=True, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * _exclusive_prod(x, ctx.attrs["axis"]),)


@KernelRegistry.register(NodeKind.LOGSUMEXP)
class LogSumExpOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        axis = ctx.attrs["axis"]
        m = np.max(x, axis=axis, keepdims=True)
        m = np.where(np.isfinite(m), m, 0)
        return m + np.log(np.sum(np.exp(x - m), axis=axis, keepdims=True))

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * np.exp(x - value),)
