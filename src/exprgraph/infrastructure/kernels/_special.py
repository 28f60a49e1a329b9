"""
Normalizer, loss, top-k and escape-hatch kernels.

- ``softmax`` / ``logsoftmax``: numerically stable along ``attrs["axis"]``.
- ``cross_entropy``: ``logsumexp(logits) - logits[label]`` over the last
  axis; the output keeps that axis with size 1.
- ``topk``: values node; saves the selected positions in its context.
  The paired ``topk_indices`` node reads them from there.
- ``debug``: identity that reports its value and gradient.
- ``lambda``: caller supplied forward/backward closures.
"""

import logging

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES, INDEX_TYPE
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry

logger = logging.getLogger(__name__)


def _softmax(x: np.ndarray, axis: int) -> np.ndarray:
    m = np.max(x, axis=axis, keepdims=True)
    e = np.exp(x - np.where(np.isfinite(m), m, 0))
    return e / np.sum(e, axis=axis, keepdims=True)


@KernelRegistry.register(NodeKind.SOFTMAX)
class SoftmaxOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return _softmax(x, ctx.attrs["axis"])

    @staticmethod
    def backward(ctx, adj, value, x):
        axis = ctx.attrs["axis"]
        return (value * (adj - np.sum(adj * value, axis=axis, keepdims=True)),)


@KernelRegistry.register(NodeKind.LOGSOFTMAX)
class LogSoftmaxOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        axis = ctx.attrs["axis"]
        m = np.max(x, axis=axis, keepdims=True)
        shifted = x - np.where(np.isfinite(m), m, 0)
        return shifted - np.log(np.sum(np.exp(shifted), axis=axis, keepdims=True))

    @staticmethod
    def backward(ctx, adj, value, x):
        axis = ctx.attrs["axis"]
        return (adj - np.exp(value) * np.sum(adj, axis=axis, keepdims=True),)


@KernelRegistry.register(NodeKind.CROSS_ENTROPY)
class CrossEntropyOp(NodeOp):
    """
    Per-row negative log likelihood of integer labels.

    Parameters
    ----------
    logits : ndarray
        Shape ``[..., C]``.
    labels : ndarray
        One label per row; reshaped to ``[..., 1]``.

    Notes
    -----
    The gradient w.r.t. the logits is ``softmax(logits) - onehot(label)``
    scaled by the incoming gradient. Labels are not differentiable.
    """

    @staticmethod
    def forward(ctx, logits, labels):
        idx = labels.astype(np.intp, copy=False).reshape(logits.shape[:-1] + (1,))
        p = _softmax(logits, -1)
        ctx.save_for_backward(p, idx)
        m = np.max(logits, axis=-1, keepdims=True)
        lse = m + np.log(np.sum(np.exp(logits - m), axis=-1, keepdims=True))
        return lse - np.take_along_axis(logits, idx, axis=-1)

    @staticmethod
    def backward(ctx, adj, value, logits, labels):
        p, idx = ctx.saved_tensors
        grad = p * adj
        np.put_along_axis(grad, idx, np.take_along_axis(grad, idx, axis=-1) - adj, axis=-1)
        return grad, None


@KernelRegistry.register(NodeKind.TOPK)
class TopKOp(NodeOp):
    """
    The ``k`` largest (or smallest) entries along ``axis``.

    Ties keep the lower index first. The selected positions are saved in the
    context for the paired index node and for backward.
    """

    @staticmethod
    def forward(ctx, x):
        a = ctx.attrs
        keys = -x if a["descending"] else x
        order = np.argsort(keys, axis=a["axis"], kind="stable")
        idx = np.take(order, np.arange(a["k"]), axis=a["axis"])
        ctx.save_for_backward(idx)
        return np.take_along_axis(x, idx, axis=a["axis"])

    @staticmethod
    def backward(ctx, adj, value, x):
        (idx,) = ctx.saved_tensors
        grad = np.zeros(x.shape, dtype=adj.dtype)
        np.put_along_axis(grad, idx, adj, axis=ctx.attrs["axis"])
        return (grad,)


@KernelRegistry.register(NodeKind.TOPK_INDICES, types=(INDEX_TYPE,))
class TopKIndicesOp(NodeOp):
    @staticmethod
    def forward(ctx, values):
        source = ctx.node.inputs[0].ctx
        (idx,) = source.saved_tensors
        return idx.astype(ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, values):
        return (None,)


def _report(ctx, phase: str, array: np.ndarray) -> None:
    message = ctx.attrs.get("message", "")
    node = ctx.node
    logger.info("debug %s [%s] #%d %s:\n%s", message, phase, node.id, node.shape, array)
    hook = node.graph.config.debug_hook
    if hook is not None:
        hook(message, phase, array)


@KernelRegistry.register(NodeKind.DEBUG, types=ALL_TYPES)
class DebugOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        _report(ctx, "forward", x)
        return np.array(x, copy=True)

    @staticmethod
    def backward(ctx, adj, value, x):
        _report(ctx, "backward", adj)
        return (adj,)


@KernelRegistry.register(NodeKind.LAMBDA, types=ALL_TYPES)
class LambdaOp(NodeOp):
    """
    Runs ``attrs["forward_fn"](*inputs)`` and, if present,
    ``attrs["backward_fn"](adj, value, *inputs)``.
    """

    @staticmethod
    def forward(ctx, *inputs):
        return np.asarray(ctx.attrs["forward_fn"](*inputs))

    @staticmethod
    def backward(ctx, adj, value, *inputs):
        fn = ctx.attrs.get("backward_fn")
        if fn is None:
            return (None,) * len(inputs)
        grads = tuple(fn(adj, value, *inputs))
        if len(grads) != len(inputs):
            raise ValueError(
                f"lambda backward returned {len(grads)} gradients for {len(inputs)} inputs"
            )
        return grads
