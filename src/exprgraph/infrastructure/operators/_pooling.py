"""
Pooling factories (NCHW).
"""

from ...domain._errors import ShapeError
from ...domain._promotion import is_broadcastable_to
from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ..kernels._pooling import masked_pool_width, pooled_size
from ._helpers import expect_expr, graph_of, require_rank


def _pool(kind, x, height, width, pad_height, pad_width, stride_height, stride_width) -> Expr:
    op = kind.value
    x = expect_expr(x, op)
    require_rank(x, 4, op, exact=True)
    if min(height, width, stride_height, stride_width) < 1 or min(pad_height, pad_width) < 0:
        raise ValueError(f"{op}: window and stride must be positive, padding non-negative")
    N, C, H, W = x.shape
    H_out = pooled_size(H, height, stride_height, pad_height)
    W_out = pooled_size(W, width, stride_width, pad_width)
    if H_out < 1 or W_out < 1:
        raise ShapeError(op, "window larger than the padded input", (x.shape,))
    attrs = {
        "kernel": (int(height), int(width)),
        "stride": (int(stride_height), int(stride_width)),
        "padding": (int(pad_height), int(pad_width)),
    }
    return x.graph.add_node(kind, (x,), (N, C, H_out, W_out), x.value_type, attrs=attrs)


def avg_pooling(
    x: Expr,
    height: int,
    width: int,
    pad_height: int = 0,
    pad_width: int = 0,
    stride_height: int = 1,
    stride_width: int = 1,
) -> Expr:
    """
    Average pooling over ``height x width`` windows.

    Zero padding counts towards the window area.
    """
    return _pool(NodeKind.AVG_POOLING, x, height, width, pad_height, pad_width, stride_height, stride_width)


def max_pooling(
    x: Expr,
    height: int,
    width: int,
    pad_height: int = 0,
    pad_width: int = 0,
    stride_height: int = 1,
    stride_width: int = 1,
) -> Expr:
    return _pool(NodeKind.MAX_POOLING, x, height, width, pad_height, pad_width, stride_height, stride_width)


def pooling_with_masking(x: Expr, mask: Expr, width: int, is_even: bool = False) -> Expr:
    """
    Max over windows of ``width`` time steps of a ``[batch, dim, time]``
    input, skipping steps where ``mask`` (``[batch, 1, time]``) is 0.

    With ``is_even`` the last time step is dropped before windowing.
    """
    graph_of(x, mask, op="pooling_with_masking")
    x = expect_expr(x, "pooling_with_masking")
    mask = expect_expr(mask, "pooling_with_masking")
    require_rank(x, 3, "pooling_with_masking", exact=True)
    if width < 1:
        raise ValueError(f"pooling_with_masking: width must be positive, got {width}")
    B, D, T = x.shape
    if not is_broadcastable_to(mask.shape, (B, 1, T)):
        raise ShapeError("pooling_with_masking", "mask must broadcast to [batch, 1, time]", (x.shape, mask.shape))
    out = masked_pool_width(T, width, is_even)
    if out < 1:
        raise ShapeError("pooling_with_masking", "no time steps to pool", (x.shape,))
    return x.graph.add_node(
        NodeKind.POOLING_WITH_MASKING,
        (x, mask),
        (B, D, out),
        x.value_type,
        attrs={"width": int(width), "is_even": bool(is_even)},
    )
