"""
Elementwise kernels (CPU, NumPy).

Unary kernels map one array to an array of the same shape; binary kernels
follow NumPy broadcasting, and their backward rules return gradients in the
broadcast (output) shape. The engine reduces each gradient to its input's
shape before accumulating it.

Kernel attributes
-----------------
- ``sqrt``: ``eps`` added under the root.
- ``prelu``: ``alpha`` slope for negative inputs.
- ``swish``: ``beta`` in ``x * sigmoid(beta * x)``.
- ``clip`` / ``clip_gradient``: ``c``, the symmetric bound.
"""

import numpy as np

from ...domain._node_op import NodeOp
from ...domain._types import ALL_TYPES, FLOAT_TYPES, INT_TYPES
from ..graph._kinds import NodeKind
from ._registry import KernelRegistry

SIGNED_TYPES = FLOAT_TYPES + tuple(t for t in INT_TYPES if t.is_signed)


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form avoids overflow of exp(-x) for large negative x
    return 0.5 * (1.0 + np.tanh(0.5 * x))


# ----------------------------
# Unary math
# ----------------------------
@KernelRegistry.register(NodeKind.NEG, types=SIGNED_TYPES)
class NegOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.negative(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (-adj,)


@KernelRegistry.register(NodeKind.EXP)
class ExpOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.exp(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * value,)


@KernelRegistry.register(NodeKind.LOG)
class LogOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.log(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj / x,)


@KernelRegistry.register(NodeKind.SIN)
class SinOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.sin(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * np.cos(x),)


@KernelRegistry.register(NodeKind.COS)
class CosOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.cos(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (-adj * np.sin(x),)


@KernelRegistry.register(NodeKind.TAN)
class TanOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.tan(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * (1.0 + value * value),)


@KernelRegistry.register(NodeKind.SQRT)
class SqrtOp(NodeOp):
    """``sqrt(x + eps)``; the gradient divides by ``2 * sqrt(x + eps)``."""

    @staticmethod
    def forward(ctx, x):
        return np.sqrt(x + ctx.attrs.get("eps", 0.0))

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj / (2.0 * value),)


@KernelRegistry.register(NodeKind.SQUARE, types=ALL_TYPES)
class SquareOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.square(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (2.0 * x * adj,)


@KernelRegistry.register(NodeKind.ABS, types=SIGNED_TYPES)
class AbsOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.abs(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * np.sign(x),)


# ----------------------------
# Activations
# ----------------------------
@KernelRegistry.register(NodeKind.SIGMOID)
class SigmoidOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return _sigmoid(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * value * (1.0 - value),)


@KernelRegistry.register(NodeKind.TANH)
class TanhOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.tanh(x)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * (1.0 - value * value),)


@KernelRegistry.register(NodeKind.RELU)
class ReluOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.maximum(x, 0)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj * (x > 0),)


@KernelRegistry.register(NodeKind.PRELU)
class PReluOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        alpha = ctx.attrs["alpha"]
        return np.where(x > 0, x, alpha * x)

    @staticmethod
    def backward(ctx, adj, value, x):
        alpha = ctx.attrs["alpha"]
        return (adj * np.where(x > 0, 1.0, alpha),)


@KernelRegistry.register(NodeKind.SWISH)
class SwishOp(NodeOp):
    """
    ``x * sigmoid(beta * x)``.

    Notes
    -----
    d/dx = s + beta * x * s * (1 - s), with s = sigmoid(beta * x).
    """

    @staticmethod
    def forward(ctx, x):
        beta = ctx.attrs.get("beta", 1.0)
        s = _sigmoid(beta * x)
        ctx.save_for_backward(s)
        return x * s

    @staticmethod
    def backward(ctx, adj, value, x):
        beta = ctx.attrs.get("beta", 1.0)
        (s,) = ctx.saved_tensors
        return (adj * (s + beta * value * (1.0 - s)),)


@KernelRegistry.register(NodeKind.CLIP)
class ClipOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        c = ctx.attrs["c"]
        return np.clip(x, -c, c)

    @staticmethod
    def backward(ctx, adj, value, x):
        c = ctx.attrs["c"]
        return (adj * (np.abs(x) <= c),)


@KernelRegistry.register(NodeKind.CLIP_GRADIENT)
class ClipGradientOp(NodeOp):
    """Identity on forward; clamps the gradient to ``[-c, c]`` on backward."""

    @staticmethod
    def forward(ctx, x):
        return np.array(x, copy=True)

    @staticmethod
    def backward(ctx, adj, value, x):
        c = ctx.attrs["c"]
        return (np.clip(adj, -c, c),)


@KernelRegistry.register(NodeKind.STOP_GRADIENT, types=ALL_TYPES)
class StopGradientOp(NodeOp):
    @staticmethod
    def forward(ctx, x):
        return np.array(x, copy=True)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (None,)


@KernelRegistry.register(NodeKind.CAST, types=ALL_TYPES)
class CastOp(NodeOp):
    """Element type conversion; the gradient is cast back by the engine."""

    @staticmethod
    def forward(ctx, x):
        return x.astype(ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, x):
        return (adj,)


# ----------------------------
# Binary
# ----------------------------
@KernelRegistry.register(NodeKind.PLUS, types=ALL_TYPES)
class PlusOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        return np.add(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return adj, adj


@KernelRegistry.register(NodeKind.MINUS, types=ALL_TYPES)
class MinusOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        return np.subtract(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return adj, -adj


@KernelRegistry.register(NodeKind.MULT, types=ALL_TYPES)
class MultOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        return np.multiply(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return adj * b, adj * a


@KernelRegistry.register(NodeKind.DIV)
class DivOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        return np.divide(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return adj / b, -adj * a / (b * b)


@KernelRegistry.register(NodeKind.LOGADDEXP)
class LogAddExpOp(NodeOp):
    @staticmethod
    def forward(ctx, a, b):
        return np.logaddexp(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        return adj * np.exp(a - value), adj * np.exp(b - value)


@KernelRegistry.register(NodeKind.MAXIMUM, types=ALL_TYPES)
class MaximumOp(NodeOp):
    """Ties route the gradient to the first operand."""

    @staticmethod
    def forward(ctx, a, b):
        return np.maximum(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        first = a >= b
        return adj * first, adj * ~first


@KernelRegistry.register(NodeKind.MINIMUM, types=ALL_TYPES)
class MinimumOp(NodeOp):
    """Ties route the gradient to the first operand."""

    @staticmethod
    def forward(ctx, a, b):
        return np.minimum(a, b, dtype=ctx.dtype)

    @staticmethod
    def backward(ctx, adj, value, a, b):
        first = a <= b
        return adj * first, adj * ~first
