"""
Index based selection kernels: gather and index_select.

The second input holds indices (element type ``uint32``). Indices receive
no gradient; the data gradient is scattered back with ``np.add.at`` so
repeated indices accumulate.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


def _as_index(indices: np.ndarray) -> np.ndarray:
    return indices.astype(np.intp, copy=False)


@KernelRegistry.register(NodeKind.GATHER, types=ALL_TYPES)
class GatherOp(NodeOp):
    """
    ``out[..., i, ...] = x[..., indices[..., i, ...], ...]`` along ``axis``.

    The index tensor has the input's rank; along every other axis its size
    equals the input's or is 1 (broadcast).
    """

    @staticmethod
    def forward(ctx, x, indices):
        axis = ctx.attrs["axis"]
        idx = np.broadcast_to(_as_index(indices), ctx.shape)
        return np.take_along_axis(x, idx, axis=axis)

    @staticmethod
    def backward(ctx, adj, value, x, indices):
        axis = ctx.attrs["axis"]
        idx = np.broadcast_to(_as_index(indices), adj.shape)
        grid = list(np.indices(adj.shape, sparse=True))
        grid[axis] = idx
        grad = np.zeros(x.shape, dtype=adj.dtype)
        np.add.at(grad, tuple(grid), adj)
        return grad, None


@KernelRegistry.register(NodeKind.INDEX_SELECT, types=ALL_TYPES)
class IndexSelectOp(NodeOp):
    """Select whole slices along ``axis`` by a flat list of indices."""

    @staticmethod
    def forward(ctx, x, indices):
        return np.take(x, _as_index(indices).reshape(-1), axis=ctx.attrs["axis"])

    @staticmethod
    def backward(ctx, adj, value, x, indices):
        axis = ctx.attrs["axis"]
        grad = np.zeros(x.shape, dtype=adj.dtype)
        np.add.at(
            np.moveaxis(grad, axis, 0),
            _as_index(indices).reshape(-1),
            np.moveaxis(adj, axis, 0),
        )
        return grad, None
