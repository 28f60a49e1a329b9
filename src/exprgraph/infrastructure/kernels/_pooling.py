"""
Pooling kernels (CPU, NumPy), NCHW layout.

Naive loop implementations of 2D average and max pooling plus the masked
max pooling used over padded sequences. Kernel attributes are ``kernel``,
``stride`` and ``padding``, each an ``(h, w)`` pair.

Notes
-----
- Max pooling pads with ``-inf`` so padding never wins; the argmax position
  of every window is saved for backward.
- Average pooling pads with zeros and divides by the full window area,
  including padded positions.
"""

from typing import Tuple

import numpy as np

from ...domain._node_op import NodeOp
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry


def pooled_size(size: int, kernel: int, stride: int, padding: int) -> int:
    """Output length of one spatial axis."""
    return (size + 2 * padding - kernel) // stride + 1


def _padded(x: np.ndarray, padding: Tuple[int, int], fill: float) -> np.ndarray:
    p_h, p_w = padding
    return np.pad(
        x,
        pad_width=((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)),
        mode="constant",
        constant_values=fill,
    )


@KernelRegistry.register(NodeKind.MAX_POOLING)
class MaxPoolingOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        (k_h, k_w), (s_h, s_w) = ctx.attrs["kernel"], ctx.attrs["stride"]
        p_h, p_w = ctx.attrs["padding"]
        N, C, H_out, W_out = ctx.shape
        x_pad = _padded(x, (p_h, p_w), -np.inf)
        W_pad = x_pad.shape[3]

        y = np.empty(ctx.shape, dtype=x.dtype)
        argmax_idx = np.empty(ctx.shape, dtype=np.int64)
        for i in range(H_out):
            h0 = i * s_h
            for j in range(W_out):
                w0 = j * s_w
                patch = x_pad[:, :, h0 : h0 + k_h, w0 : w0 + k_w].reshape(N, C, -1)
                flat_idx = np.argmax(patch, axis=-1)
                y[:, :, i, j] = np.take_along_axis(patch, flat_idx[..., None], axis=-1)[..., 0]
                argmax_idx[:, :, i, j] = (h0 + flat_idx // k_w) * W_pad + (w0 + flat_idx % k_w)

        ctx.save_for_backward(argmax_idx)
        ctx.saved_meta["padded_shape"] = x_pad.shape
        return y

    @staticmethod
    def backward(ctx, adj, value, x):
        """
        Route each output gradient to the input position that won the max.

        Padding positions never win, so they receive nothing.
        """
        (argmax_idx,) = ctx.saved_tensors
        N, C, H_pad, W_pad = ctx.saved_meta["padded_shape"]
        p_h, p_w = ctx.attrs["padding"]
        H, W = x.shape[2], x.shape[3]

        grad_pad = np.zeros((N, C, H_pad * W_pad), dtype=adj.dtype)
        flat_idx = argmax_idx.reshape(N, C, -1)
        n_idx = np.arange(N)[:, None, None]
        c_idx = np.arange(C)[None, :, None]
        np.add.at(grad_pad, (n_idx, c_idx, flat_idx), adj.reshape(N, C, -1))
        grad_pad = grad_pad.reshape(N, C, H_pad, W_pad)
        return (grad_pad[:, :, p_h : p_h + H, p_w : p_w + W],)


@KernelRegistry.register(NodeKind.AVG_POOLING)
class AvgPoolingOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        (k_h, k_w), (s_h, s_w) = ctx.attrs["kernel"], ctx.attrs["stride"]
        _, _, H_out, W_out = ctx.shape
        x_pad = _padded(x, ctx.attrs["padding"], 0.0)
        denom = float(k_h * k_w)

        y = np.empty(ctx.shape, dtype=x.dtype)
        for i in range(H_out):
            h0 = i * s_h
            for j in range(W_out):
                w0 = j * s_w
                patch = x_pad[:, :, h0 : h0 + k_h, w0 : w0 + k_w]
                y[:, :, i, j] = patch.sum(axis=(2, 3)) / denom
        return y

    @staticmethod
    def backward(ctx, adj, value, x):
        (k_h, k_w), (s_h, s_w) = ctx.attrs["kernel"], ctx.attrs["stride"]
        p_h, p_w = ctx.attrs["padding"]
        N, C, H, W = x.shape
        _, _, H_out, W_out = adj.shape
        denom = float(k_h * k_w)

        grad_pad = np.zeros((N, C, H + 2 * p_h, W + 2 * p_w), dtype=adj.dtype)
        for i in range(H_out):
            h0 = i * s_h
            for j in range(W_out):
                w0 = j * s_w
                go = adj[:, :, i, j] / denom
                grad_pad[:, :, h0 : h0 + k_h, w0 : w0 + k_w] += go[:, :, None, None]
        return (grad_pad[:, :, p_h : p_h + H, p_w : p_w + W],)


def masked_pool_width(length: int, width: int, is_even: bool) -> int:
    """Number of windows produced over a time axis of ``length``."""
    cols = length - 1 if is_even else length
    return cols // width + (cols % width != 0)


@KernelRegistry.register(NodeKind.POOLING_WITH_MASKING)
class PoolingWithMaskingOp(NodeOp):
    """
    Max over consecutive windows of ``width`` time steps, ignoring masked
    steps.

    Parameters
    ----------
    x : ndarray
        Shape ``[batch, dim, time]``.
    mask : ndarray
        Broadcastable to ``[batch, 1, time]``; nonzero marks valid steps.

    Notes
    -----
    With ``is_even`` the last time step is excluded before windowing. A
    window without any valid step yields 0 and passes no gradient.
    """

    @staticmethod
    def forward(ctx, x, mask):
        width = ctx.attrs["width"]
        valid = np.broadcast_to(mask != 0, x.shape)
        masked = np.where(valid, x, -np.inf)
        out = np.zeros(ctx.shape, dtype=x.dtype)
        winners = np.full(ctx.shape, -1, dtype=np.int64)
        cols = x.shape[2] - 1 if ctx.attrs["is_even"] else x.shape[2]
        for j in range(ctx.shape[2]):
            lo, hi = j * width, min((j + 1) * width, cols)
            window = masked[:, :, lo:hi]
            best = np.argmax(window, axis=-1)
            top = np.take_along_axis(window, best[..., None], axis=-1)[..., 0]
            hit = np.isfinite(top)
            out[:, :, j] = np.where(hit, top, 0)
            winners[:, :, j] = np.where(hit, lo + best, -1)
        ctx.save_for_backward(winners)
        return out

    @staticmethod
    def backward(ctx, adj, value, x, mask):
        (winners,) = ctx.saved_tensors
        grad = np.zeros(x.shape, dtype=adj.dtype)
        b, d, j = np.nonzero(winners >= 0)
        np.add.at(grad, (b, d, winners[b, d, j]), adj[b, d, j])
        return grad, None
