"""
Shape manipulation factories.

Most of these create a single TRANSPOSE, RESHAPE, CONCATENATE, SLICE or SHIFT
node; several (`flatten`, `atleast_nd`, `rows`, `narrow`, ...) are thin
compositions. Factories that would produce a node identical to their input
(``cast`` to the same type, a full-range ``slice``, ...) return the input.
"""

from __future__ import annotations

import builtins
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from ...domain._errors import ShapeError
from ...domain._promotion import promote_all
from ...domain._shape import Shape
from ...domain._types import ElementType
from ..graph._expr import Expr
from ..graph._kinds import NodeKind
from ._helpers import as_exprs, expect_expr, unary


def transpose(x: Expr, axes: Optional[Sequence[int]] = None) -> Expr:
    """
    Permute axes.

    Without ``axes`` the last two axes are swapped. With ``axes`` the result
    axis ``i`` is input axis ``axes[i]`` (negative values allowed).
    """
    x = expect_expr(x, "transpose")
    rank = x.shape.rank
    if axes is None:
        if rank < 2:
            raise ShapeError("transpose", "needs rank >= 2 to swap the last two axes", (x.shape,))
        axes = list(range(rank - 2)) + [rank - 1, rank - 2]
    axes = [x.shape.axis(a, "transpose") for a in axes]
    if sorted(axes) != list(range(rank)):
        raise ShapeError("transpose", f"{list(axes)} is not a permutation of {rank} axes", (x.shape,))
    if axes == list(range(rank)):
        return x
    shape = tuple(x.shape[a] for a in axes)
    return unary(NodeKind.TRANSPOSE, x, attrs={"axes": tuple(axes)}, float_only=False, shape=shape)


def swap_axes(x: Expr, axis1: int, axis2: int) -> Expr:
    x = expect_expr(x, "swap_axes")
    a1 = x.shape.axis(axis1, "swap_axes")
    a2 = x.shape.axis(axis2, "swap_axes")
    if a1 == a2:
        return x
    axes = list(range(x.shape.rank))
    axes[a1], axes[a2] = axes[a2], axes[a1]
    return transpose(x, axes)


def reshape(x: Expr, shape: Iterable[int]) -> Expr:
    """Reinterpret ``x`` with a new shape holding the same number of elements."""
    x = expect_expr(x, "reshape")
    shape = Shape(shape)
    if shape.elements() != x.shape.elements():
        raise ShapeError("reshape", "element counts differ", (x.shape, shape))
    if shape == x.shape:
        return x
    return unary(NodeKind.RESHAPE, x, float_only=False, shape=shape)


def flatten(x: Expr) -> Expr:
    return reshape(x, (x.shape.elements(),))


def flatten_2d(x: Expr) -> Expr:
    """Collapse every axis but the last: ``[a, b, c] -> [a * b, c]``."""
    x = expect_expr(x, "flatten_2d")
    if x.shape.rank == 0:
        return reshape(x, (1, 1))
    last = x.shape[-1]
    rows = x.shape.elements() // last if last else int(np.prod(x.shape[:-1]))
    return reshape(x, (rows, last))


def atleast_nd(x: Expr, n: int) -> Expr:
    """Prepend size-1 axes until ``x`` has rank ``n``."""
    x = expect_expr(x, "atleast_nd")
    if x.shape.rank >= n:
        return x
    return reshape(x, (1,) * (n - x.shape.rank) + tuple(x.shape))


def atleast_1d(x: Expr) -> Expr:
    return atleast_nd(x, 1)


def atleast_2d(x: Expr) -> Expr:
    return atleast_nd(x, 2)


def atleast_3d(x: Expr) -> Expr:
    return atleast_nd(x, 3)


def atleast_4d(x: Expr) -> Expr:
    return atleast_nd(x, 4)


def concatenate(xs: Iterable[Expr], axis: int = 0) -> Expr:
    """
    Join expressions along ``axis``.

    Raises
    ------
    ShapeError
        If ranks differ or any other axis has a different size.
    """
    xs = as_exprs(xs, "concatenate")
    if len(xs) == 1:
        return xs[0]
    first = xs[0].shape
    ax = first.axis(axis, "concatenate")
    for x in xs[1:]:
        s = x.shape
        if s.rank != first.rank or any(s[i] != first[i] for i in range(s.rank) if i != ax):
            raise ShapeError("concatenate", "shapes differ outside the joined axis", (first, s))
    shape = first.with_axis(ax, sum(x.shape[ax] for x in xs))
    value_type = promote_all((x.value_type for x in xs), "concatenate")
    return xs[0].graph.add_node(NodeKind.CONCATENATE, xs, shape, value_type, attrs={"axis": ax})


def repeat(x: Expr, repeats: int = 1, axis: int = 0) -> Expr:
    """Tile ``x`` ``repeats`` times along ``axis``."""
    if repeats < 1:
        raise ValueError(f"repeat: repeats must be >= 1, got {repeats}")
    if repeats == 1:
        return expect_expr(x, "repeat")
    return concatenate([x] * repeats, axis)


def cast(x: Expr, value_type: Any = ElementType.FLOAT32) -> Expr:
    x = expect_expr(x, "cast")
    value_type = ElementType.parse(value_type)
    if value_type is x.value_type:
        return x
    return unary(NodeKind.CAST, x, float_only=False, value_type=value_type)


def clip(x: Expr, c: float) -> Expr:
    """Clamp values to ``[-c, c]``; gradients pass only where not clamped."""
    if c <= 0:
        raise ValueError(f"clip: bound must be positive, got {c}")
    return unary(NodeKind.CLIP, x, attrs={"c": float(c)})


def clip_gradient(x: Expr, c: float) -> Expr:
    """Identity whose backward clamps the gradient to ``[-c, c]``."""
    if c <= 0:
        raise ValueError(f"clip_gradient: bound must be positive, got {c}")
    return unary(NodeKind.CLIP_GRADIENT, x, attrs={"c": float(c)})


def stop_gradient(x: Expr) -> Expr:
    return unary(NodeKind.STOP_GRADIENT, x, float_only=False)


def constant_like(x: Expr, init: Any) -> Expr:
    """A constant with the shape and element type of ``x``."""
    x = expect_expr(x, "constant_like")
    return x.graph.constant(x.shape, init=init, value_type=x.value_type)


def slice(x: Expr, axis: int, index: Union[int, builtins.slice, range]) -> Expr:
    """
    Select along one axis by integer index, slice object or range.

    An integer index keeps the axis with size 1. Negative indices and range
    bounds count from the end of the axis. Steps must be positive.
    """
    x = expect_expr(x, "slice")
    ax = x.shape.axis(axis, "slice")
    n = x.shape[ax]
    if isinstance(index, (int, np.integer)):
        i = int(index) + n if index < 0 else int(index)
        if not 0 <= i < n:
            raise ShapeError("slice", f"index {index} out of range for axis of size {n}", (x.shape,))
        start, stop, step = i, i + 1, 1
    elif isinstance(index, (range, builtins.slice)):
        # negative bounds count from the end, as in Python indexing
        start, stop, step = builtins.slice(index.start, index.stop, index.step).indices(n)
    else:
        raise TypeError(f"slice: unsupported index {index!r}")
    if step <= 0:
        raise ValueError(f"slice: step must be positive, got {step}")

    start, stop = max(0, min(start, n)), max(0, min(stop, n))
    length = len(range(start, stop, step))
    if length == n:
        return x
    return unary(
        NodeKind.SLICE,
        x,
        attrs={"axis": ax, "start": start, "stop": stop, "step": step},
        float_only=False,
        shape=x.shape.with_axis(ax, length),
    )


def narrow(x: Expr, axis: int, start: int, length: int) -> Expr:
    """``length`` consecutive entries of ``axis`` beginning at ``start``."""
    return slice(x, axis, builtins.slice(start, start + length))


def shift(x: Expr, offsets: Sequence[int], pad_value: float = 0.0) -> Expr:
    """
    Shift contents by ``offsets[i]`` positions along axis ``i``.

    ``out[j] = x[j - offset]``; positions shifted in from outside are set to
    ``pad_value``. Missing trailing offsets are 0.
    """
    x = expect_expr(x, "shift")
    offsets = [int(o) for o in offsets]
    if len(offsets) > x.shape.rank:
        raise ShapeError("shift", f"{len(offsets)} offsets for rank {x.shape.rank}", (x.shape,))
    offsets += [0] * (x.shape.rank - len(offsets))
    if not any(offsets):
        return x
    return unary(
        NodeKind.SHIFT,
        x,
        attrs={"offsets": tuple(offsets), "pad_value": pad_value},
        float_only=False,
    )

