"""
Immutable tensor shape.

A :class:`Shape` is an ordered tuple of non-negative integers with a fixed
maximum rank. It is a ``tuple`` subclass so it compares equal to plain tuples
and can be passed wherever NumPy expects a shape, while adding the few helpers
the graph needs: element counts and negative axis normalization.
"""

from __future__ import annotations

from typing import Iterable, Union

from ._errors import AxisError, ShapeError

MAX_RANK = 8
"""Maximum number of axes a node shape may have."""

ShapeLike = Union["Shape", Iterable[int], int]


class Shape(tuple):
    """
    Immutable, validated tensor shape.

    Parameters
    ----------
    dims : Iterable[int] | int
        Axis sizes. A bare integer is treated as a rank-1 shape.

    Raises
    ------
    ShapeError
        If any size is negative or not an integer, or if the rank exceeds
        `MAX_RANK`.

    Notes
    -----
    Shapes are created once per node and never mutated. Use the ``with_axis``
    helper to derive a new shape with one size replaced.
    """

    def __new__(cls, dims: ShapeLike = ()) -> "Shape":
        if isinstance(dims, Shape):
            return dims
        if isinstance(dims, int):
            dims = (dims,)
        try:
            raw = tuple(dims)
            values = tuple(int(d) for d in raw)
            exact = all(v == d for v, d in zip(values, raw))
        except (TypeError, ValueError):
            raise ShapeError("shape", f"invalid shape {dims!r}") from None
        if not exact:
            raise ShapeError("shape", f"shape sizes must be integers, got {dims!r}")
        if any(d < 0 for d in values):
            raise ShapeError("shape", f"shape sizes must be non-negative, got {list(values)}")
        if len(values) > MAX_RANK:
            raise ShapeError(
                "shape", f"rank {len(values)} exceeds the maximum rank {MAX_RANK}"
            )
        return super().__new__(cls, values)

    def __repr__(self) -> str:
        return f"Shape({list(self)})"

    def __str__(self) -> str:
        return str(list(self))

    @property
    def rank(self) -> int:
        return len(self)

    def elements(self) -> int:
        """Return the number of elements (1 for a rank-0 shape)."""
        n = 1
        for d in self:
            n *= d
        return n

    def axis(self, ax: int, op: str = "axis") -> int:
        """
        Normalize a possibly negative axis into ``[0, rank)``.

        Parameters
        ----------
        ax : int
            Axis index; negative values count from the end.
        op : str
            Operator name used in the error message.

        Returns
        -------
        int
            The normalized axis.

        Raises
        ------
        AxisError
            If the axis does not resolve into ``[0, rank)``.
        """
        rank = len(self)
        norm = ax + rank if ax < 0 else ax
        if not 0 <= norm < rank:
            raise AxisError(ax, rank, op)
        return norm

    def with_axis(self, ax: int, size: int) -> "Shape":
        """Return a copy with the size of axis ``ax`` replaced by ``size``."""
        ax = self.axis(ax)
        dims = list(self)
        dims[ax] = size
        return Shape(dims)

    def is_scalar(self) -> bool:
        """True if the shape holds exactly one element."""
        return self.elements() == 1
