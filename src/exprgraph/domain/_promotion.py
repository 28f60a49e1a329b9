"""
Shape broadcasting and element type promotion rules.

These are pure functions consulted by every binary and elementwise operator
factory *before* a node is constructed:

- `broadcast_shapes` implements right-aligned broadcasting: two shapes are
  compatible if every aligned axis pair is equal or one side is exactly 1
  (a missing leading axis counts as 1). The result takes the larger size.
- `promote_types` selects the result element type of a mixed-type operation.
  Identical types promote to themselves; otherwise a type is chosen that
  represents every value of both operands exactly. Pairs without such a type
  (e.g. ``int64`` with ``float32``, or ``uint64`` with any signed integer) are
  rejected instead of silently truncating.
"""

from __future__ import annotations

from functools import reduce
from typing import Iterable

from ._errors import ShapeError, TypePromotionError
from ._shape import Shape, ShapeLike
from ._types import ElementType

_FLOATS_BY_SIZE = (ElementType.FLOAT16, ElementType.FLOAT32, ElementType.FLOAT64)
_SIGNED_BY_SIZE = (ElementType.INT8, ElementType.INT16, ElementType.INT32, ElementType.INT64)


def broadcast_shape(a: ShapeLike, b: ShapeLike, op: str = "broadcast") -> Shape:
    """
    Compute the broadcast result of two shapes.

    Parameters
    ----------
    a, b : ShapeLike
        Operand shapes.
    op : str
        Operator name used in error messages.

    Returns
    -------
    Shape
        The broadcast shape.

    Raises
    ------
    ShapeError
        If some aligned axis pair differs and neither side is 1.
    """
    sa, sb = Shape(a), Shape(b)
    rank = max(len(sa), len(sb))
    pa = (1,) * (rank - len(sa)) + tuple(sa)
    pb = (1,) * (rank - len(sb)) + tuple(sb)

    out = []
    for da, db in zip(pa, pb):
        if da == db or db == 1:
            out.append(da)
        elif da == 1:
            out.append(db)
        else:
            raise ShapeError(op, "shapes are not broadcastable", (sa, sb))
    return Shape(out)


def broadcast_shapes(*shapes: ShapeLike, op: str = "broadcast") -> Shape:
    """Broadcast any number of shapes (left fold of `broadcast_shape`)."""
    if not shapes:
        return Shape(())
    return reduce(lambda x, y: broadcast_shape(x, y, op), shapes[1:], Shape(shapes[0]))


def is_broadcastable_to(src: ShapeLike, target: ShapeLike) -> bool:
    """True if ``src`` can be broadcast to exactly ``target``."""
    try:
        return broadcast_shape(src, target) == Shape(target)
    except ShapeError:
        return False


def _float_for_int(t: ElementType, at_least: ElementType) -> ElementType | None:
    # smallest float >= at_least whose significand holds every value of t
    bits = t.size * 8 - (1 if t.is_signed else 0)
    for f in _FLOATS_BY_SIZE:
        if f.size >= at_least.size and f.mantissa_bits >= bits:
            return f
    return None


def promote_types(a: ElementType, b: ElementType, op: str = "promote") -> ElementType:
    """
    Select the result element type for a binary operation.

    Parameters
    ----------
    a, b : ElementType
        Operand element types.
    op : str
        Operator name used in error messages.

    Returns
    -------
    ElementType
        A type representing every value of both operands exactly.

    Raises
    ------
    TypePromotionError
        If no such type exists.
    """
    a, b = ElementType.parse(a), ElementType.parse(b)
    if a is b:
        return a

    if a.is_float and b.is_float:
        return a if a.size >= b.size else b

    if a.is_float or b.is_float:
        f, i = (a, b) if a.is_float else (b, a)
        result = _float_for_int(i, f)
        if result is None:
            raise TypePromotionError(op, a, b)
        return result

    if a.is_signed == b.is_signed:
        return a if a.size >= b.size else b

    s, u = (a, b) if a.is_signed else (b, a)
    for candidate in _SIGNED_BY_SIZE:
        if candidate.size >= s.size and candidate.size > u.size:
            return candidate
    raise TypePromotionError(op, a, b)


def promote_all(types: Iterable[ElementType], op: str = "promote") -> ElementType:
    """Promote any number of element types (left fold of `promote_types`)."""
    types = list(types)
    if not types:
        raise TypePromotionError(op, "<none>")
    return reduce(lambda x, y: promote_types(x, y, op), types[1:], ElementType.parse(types[0]))
