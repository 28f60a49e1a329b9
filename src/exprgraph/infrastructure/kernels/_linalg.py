"""
Matrix product kernels (CPU, NumPy).

``dot`` and ``bdot`` share one kernel: both contract the last axis of
``op(a)`` with the second to last axis of ``op(b)``, where ``op`` optionally
swaps the last two axes (``trans_a`` / ``trans_b``), and multiply the result
by ``scale``. Leading axes broadcast as in ``np.matmul``; the engine reduces
the gradient of a broadcast operand back to its shape.

The CSR kernels take a sparse operand as three inputs (``values``,
``indices``, ``offsets``) in compressed sparse row layout. Only ``values``
and the dense operand are differentiable.
"""

from typing import Tuple

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


def _t(x: np.ndarray, flag: bool) -> np.ndarray:
    return np.swapaxes(x, -1, -2) if flag else x


def _matmul_grads(ctx, adj, a, b):
    at = ctx.attrs.get("trans_a", False)
    bt = ctx.attrs.get("trans_b", False)
    scale = ctx.attrs.get("scale", 1.0)
    A, B = _t(a, at), _t(b, bt)
    ga = scale * np.matmul(adj, np.swapaxes(B, -1, -2))
    gb = scale * np.matmul(np.swapaxes(A, -1, -2), adj)
    return _t(ga, at), _t(gb, bt)


@KernelRegistry.register(NodeKind.DOT, NodeKind.BDOT, types=ALL_TYPES)
class DotOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        at = ctx.attrs.get("trans_a", False)
        bt = ctx.attrs.get("trans_b", False)
        scale = ctx.attrs.get("scale", 1.0)
        out = np.matmul(_t(a, at).astype(ctx.dtype, copy=False), _t(b, bt).astype(ctx.dtype, copy=False))
        return out if scale == 1.0 else out * scale

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return _matmul_grads(ctx, adj, a, b)


@KernelRegistry.register(NodeKind.AFFINE)
class AffineOp(NodeOp):
    """``scale * op(a) @ op(b) + bias``."""

    @staticmethod
    def forward(ctx, a, b, bias):
        return DotOp.forward(ctx, a, b) + bias

    @staticmethod
    def backward(ctx, adj, value, a, b, bias):
        ga, gb = _matmul_grads(ctx, adj, a, b)
        return ga, gb, adj


def _csr_coords(indices: np.ndarray, offsets: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    offsets = offsets.astype(np.intp, copy=False)
    rows = np.repeat(np.arange(offsets.size - 1), np.diff(offsets))
    return rows, indices.astype(np.intp, copy=False)


def _csr_dense(values, indices, offsets, shape, dtype) -> np.ndarray:
    dense = np.zeros(shape, dtype=dtype)
    rows, cols = _csr_coords(indices, offsets)
    np.add.at(dense, (rows, cols), values)
    return dense


@KernelRegistry.register(NodeKind.CSR_DOT)
class CsrDotOp(NodeOp):
    """
    ``op(S) @ b`` where ``S`` is a CSR matrix of shape ``attrs["a_shape"]``.

    Inputs: ``values``, ``indices``, ``offsets``, ``b``.
    """

    @staticmethod
    def forward(ctx, values, indices, offsets, b):
        S = _csr_dense(values, indices, offsets, ctx.attrs["a_shape"], ctx.dtype)
        return np.matmul(_t(S, ctx.attrs.get("trans_a", False)), b.astype(ctx.dtype, copy=False))

    @staticmethod
    def backward(ctx, adj, value, values, indices, offsets, b):
        trans = ctx.attrs.get("trans_a", False)
        S = _csr_dense(values, indices, offsets, ctx.attrs["a_shape"], adj.dtype)
        gb = np.matmul(np.swapaxes(_t(S, trans), -1, -2), adj)
        gS = _t(np.matmul(adj, np.swapaxes(b, -1, -2)), trans)
        rows, cols = _csr_coords(indices, offsets)
        return gS[rows, cols], None, None, gb


@KernelRegistry.register(NodeKind.DOT_CSR)
class DotCsrOp(NodeOp):
    """
    ``a @ op(S)`` where ``S`` is a CSR matrix of shape ``attrs["b_shape"]``.

    Inputs: ``a``, ``values``, ``indices``, ``offsets``.
    """

    @staticmethod
    def forward(ctx, a, values, indices, offsets):
        S = _csr_dense(values, indices, offsets, ctx.attrs["b_shape"], ctx.dtype)
        return np.matmul(a.astype(ctx.dtype, copy=False), _t(S, ctx.attrs.get("trans_b", False)))

    @staticmethod
    def backward(ctx, adj, value, a, values, indices, offsets):
        trans = ctx.attrs.get("trans_b", False)
        S = _csr_dense(values, indices, offsets, ctx.attrs["b_shape"], adj.dtype)
        ga = np.matmul(adj, np.swapaxes(_t(S, trans), -1, -2))
        gS = _t(np.matmul(np.swapaxes(a, -1, -2), adj), trans)
        rows, cols = _csr_coords(indices, offsets)
        return ga, gS[rows, cols], None, None
