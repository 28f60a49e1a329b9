"""
Shape manipulation kernels: transpose, reshape, concatenate, slice, shift.

These kernels only move elements around; their backward rules apply the
inverse movement to the output gradient.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


@KernelRegistry.register(NodeKind.TRANSPOSE, types=ALL_TYPES)
class TransposeOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.transpose(x, ctx.attrs["axes"])

    @staticmethod
    def backward(ctx, adj, value, x):
        return (np.transpose(adj, np.argsort(ctx.attrs["axes"])),)


@KernelRegistry.register(NodeKind.RESHAPE, types=ALL_TYPES)
class ReshapeOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.reshape(x, ctx.shape)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (np.reshape(adj, x.shape),)


@KernelRegistry.register(NodeKind.CONCATENATE, types=ALL_TYPES)
class ConcatenateOp(NodeOp):
    @staticmethod
    def forward(ctx, *xs):
        return np.concatenate([x.astype(ctx.dtype, copy=False) for x in xs], axis=ctx.attrs["axis"])

    @staticmethod
    def backward(ctx, adj, value, *xs):
        axis = ctx.attrs["axis"]
        bounds = np.cumsum([x.shape[axis] for x in xs])[:-1]
        return tuple(np.split(adj, bounds, axis=axis))


def _axis_index(ndim: int, axis: int, index) -> tuple:
    idx = [slice(None)] * ndim
    idx[axis] = index
    return tuple(idx)


@KernelRegistry.register(NodeKind.SLICE, types=ALL_TYPES)
class SliceOp(NodeOp):
    """
    Strided range along one axis.

    Attributes: ``axis``, and ``start``, ``stop``, ``step`` already resolved
    against the axis length.
    """

    @staticmethod
    def forward(ctx, x):
        a = ctx.attrs
        return x[_axis_index(x.ndim, a["axis"], slice(a["start"], a["stop"], a["step"]))]

    @staticmethod
    def backward(ctx, adj, value, x):
        a = ctx.attrs
        grad = np.zeros(x.shape, dtype=adj.dtype)
        grad[_axis_index(x.ndim, a["axis"], slice(a["start"], a["stop"], a["step"]))] = adj
        return (grad,)


def _shift_slices(shape, offsets):
    # for each axis: destination and source ranges of a shift by `off`
    dst, src = [], []
    for n, off in zip(shape, offsets):
        off = max(-n, min(n, off))
        if off >= 0:
            dst.append(slice(off, n))
            src.append(slice(0, n - off))
        else:
            dst.append(slice(0, n + off))
            src.append(slice(-off, n))
    return tuple(dst), tuple(src)


@KernelRegistry.register(NodeKind.SHIFT, types=ALL_TYPES)
class ShiftOp(NodeOp):
    """
    ``out[i] = x[i - offset]`` per axis; positions shifted in from outside
    the input take ``pad_value``.
    """

    @staticmethod
    def forward(ctx, x):
        dst, src = _shift_slices(x.shape, ctx.attrs["offsets"])
        out = np.full(x.shape, ctx.attrs.get("pad_value", 0), dtype=ctx.dtype)
        out[dst] = x[src]
        return out

    @staticmethod
    def backward(ctx, adj, value, x):
        dst, src = _shift_slices(x.shape, ctx.attrs["offsets"])
        grad = np.zeros(x.shape, dtype=adj.dtype)
        grad[src] = adj[dst]
        return (grad,)
