"""
Operator factories.

Every factory validates its operands, computes the result shape and element
type, and creates one node (or a fixed cluster for multi-output operators) in
the operands' graph. All errors are raised before the node is linked.
"""

from ..graph._expr import get
from ._activations import gelu, leakyrelu, prelu, relu, sigmoid, swish, tanh
from ._arithmetic import (
    abs,
    add,
    cos,
    div,
    exp,
    log,
    logaddexp,
    maximum,
    minimum,
    mul,
    neg,
    plus,
    sin,
    sqrt,
    square,
    sub,
    tan,
)
from ._comparison import eq, ge, gt, le, lt, ne
from ._indexing import cols, gather, index_select, rows
from ._linalg import affine, bdot, csr_dot, dot, dot_csr
from ._losses import (
    cross_entropy,
    dropout,
    logsoftmax,
    scalar_product,
    softmax,
    unlikelihood,
    weighted_average,
)
from ._pooling import avg_pooling, max_pooling, pooling_with_masking
from ._reductions import logsumexp, max, mean, min, prod, std, sum, var
from ._shape_ops import (
    atleast_1d,
    atleast_2d,
    atleast_3d,
    atleast_4d,
    atleast_nd,
    cast,
    clip,
    clip_gradient,
    concatenate,
    constant_like,
    flatten,
    flatten_2d,
    narrow,
    repeat,
    reshape,
    shift,
    slice,
    stop_gradient,
    swap_axes,
    transpose,
)
from ._special import argmax, argmin, checkpoint, debug, lambda_, topk

__all__ = [
    "abs", "add", "affine", "argmax", "argmin", "atleast_1d", "atleast_2d",
    "atleast_3d", "atleast_4d", "atleast_nd", "avg_pooling", "bdot", "cast",
    "checkpoint", "clip", "clip_gradient", "cols", "concatenate",
    "constant_like", "cos", "cross_entropy", "csr_dot", "debug", "div", "dot",
    "dot_csr", "dropout", "eq", "exp", "flatten", "flatten_2d", "gather", "ge",
    "gelu", "get", "gt", "index_select", "lambda_", "le", "leakyrelu", "log",
    "logaddexp", "logsoftmax", "logsumexp", "lt", "max", "max_pooling",
    "maximum", "mean", "min", "minimum", "mul", "narrow", "ne", "neg", "plus",
    "pooling_with_masking", "prelu", "prod", "relu", "repeat", "reshape",
    "rows", "scalar_product", "shift", "sigmoid", "sin", "slice", "softmax",
    "sqrt", "square", "std", "stop_gradient", "sub", "sum", "swap_axes",
    "swish", "tan", "tanh", "topk", "transpose", "unlikelihood", "var",
    "weighted_average",
]
