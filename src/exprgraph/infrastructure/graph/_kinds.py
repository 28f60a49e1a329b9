"""
Node kinds.

`NodeKind` is the closed tag identifying which operator semantics a node
implements. Each kind carries fixed traits:

- ``arity``: accepted number of inputs as ``(min, max)``; ``max`` is None
  for variadic kinds.
- ``differentiable``: whether gradients flow through the kind at all.
  Non-differentiable kinds (comparisons, `stop_gradient`, index outputs)
  contribute a zero gradient to every input by never requiring grad.

The numeric rules for each kind live in the kernel registry; the engine only
consults the traits recorded here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class KindTraits:
    """
    Static traits of a node kind.

    Attributes
    ----------
    min_inputs : int
        Minimum number of inputs.
    max_inputs : Optional[int]
        Maximum number of inputs, or None if unbounded.
    differentiable : bool
        Whether gradients propagate through nodes of this kind.
    leaf : bool
        Whether nodes of this kind are graph leaves (no inputs, initializer
        driven).
    """

    min_inputs: int
    max_inputs: Optional[int]
    differentiable: bool = True
    leaf: bool = False


_UNARY = KindTraits(1, 1)
_BINARY = KindTraits(2, 2)
_COMPARE = KindTraits(2, 2, differentiable=False)


class NodeKind(Enum):
    """Enumeration of every operator kind the engine knows."""

    # leaves
    CONSTANT = "constant"
    PARAM = "param"

    # elementwise unary
    NEG = "neg"
    EXP = "exp"
    LOG = "log"
    SIN = "sin"
    COS = "cos"
    TAN = "tan"
    SQRT = "sqrt"
    SQUARE = "square"
    ABS = "abs"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    PRELU = "prelu"
    SWISH = "swish"
    CLIP = "clip"
    CLIP_GRADIENT = "clip_gradient"
    STOP_GRADIENT = "stop_gradient"
    DEBUG = "debug"
    CAST = "cast"

    # elementwise binary
    PLUS = "plus"
    MINUS = "minus"
    MULT = "mult"
    DIV = "div"
    LOGADDEXP = "logaddexp"
    MAXIMUM = "maximum"
    MINIMUM = "minimum"

    # comparisons
    LT = "lt"
    EQ = "eq"
    GT = "gt"
    GE = "ge"
    NE = "ne"
    LE = "le"

    # products
    DOT = "dot"
    BDOT = "bdot"
    AFFINE = "affine"
    CSR_DOT = "csr_dot"
    DOT_CSR = "dot_csr"

    # shape and indexing
    TRANSPOSE = "transpose"
    RESHAPE = "reshape"
    CONCATENATE = "concatenate"
    SLICE = "slice"
    SHIFT = "shift"
    GATHER = "gather"
    INDEX_SELECT = "index_select"

    # reductions
    SUM = "sum"
    MEAN = "mean"
    MAX = "max"
    MIN = "min"
    PROD = "prod"
    LOGSUMEXP = "logsumexp"

    # normalizers and losses
    SOFTMAX = "softmax"
    LOGSOFTMAX = "logsoftmax"
    CROSS_ENTROPY = "cross_entropy"

    # multi-output
    TOPK = "topk"
    TOPK_INDICES = "topk_indices"

    # pooling
    AVG_POOLING = "avg_pooling"
    MAX_POOLING = "max_pooling"
    POOLING_WITH_MASKING = "pooling_with_masking"

    # caller supplied
    LAMBDA = "lambda"

    @property
    def traits(self) -> KindTraits:
        return KIND_TRAITS.get(self, _UNARY)


KIND_TRAITS: dict[NodeKind, KindTraits] = {
    NodeKind.CONSTANT: KindTraits(0, 0, leaf=True),
    NodeKind.PARAM: KindTraits(0, 0, leaf=True),
    NodeKind.STOP_GRADIENT: KindTraits(1, 1, differentiable=False),
    NodeKind.PLUS: _BINARY,
    NodeKind.MINUS: _BINARY,
    NodeKind.MULT: _BINARY,
    NodeKind.DIV: _BINARY,
    NodeKind.LOGADDEXP: _BINARY,
    NodeKind.MAXIMUM: _BINARY,
    NodeKind.MINIMUM: _BINARY,
    NodeKind.LT: _COMPARE,
    NodeKind.EQ: _COMPARE,
    NodeKind.GT: _COMPARE,
    NodeKind.GE: _COMPARE,
    NodeKind.NE: _COMPARE,
    NodeKind.LE: _COMPARE,
    NodeKind.DOT: _BINARY,
    NodeKind.BDOT: _BINARY,
    NodeKind.AFFINE: KindTraits(3, 3),
    NodeKind.CSR_DOT: KindTraits(4, 4),
    NodeKind.DOT_CSR: KindTraits(4, 4),
    NodeKind.CONCATENATE: KindTraits(1, None),
    NodeKind.GATHER: _BINARY,
    NodeKind.INDEX_SELECT: _BINARY,
    NodeKind.CROSS_ENTROPY: _BINARY,
    NodeKind.TOPK_INDICES: KindTraits(1, 1, differentiable=False),
    NodeKind.POOLING_WITH_MASKING: _BINARY,
    NodeKind.LAMBDA: KindTraits(0, None),
}
