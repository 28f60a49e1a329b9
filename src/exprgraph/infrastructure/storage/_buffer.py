"""
Tensor buffer (NumPy backend).

A :class:`TensorBuffer` is the backing storage of one node value or one node
gradient: an ndarray of an exact shape and element type, stamped with the
graph generation it was produced in. A buffer is owned by at most one logical
slot at a time; ownership is tracked by the `BufferPool` that handed it out.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ...domain._errors import ShapeError
from ...domain._shape import Shape
from ...domain._types import ElementType


def to_numpy_dtype(value_type: ElementType) -> np.dtype:
    """Map an `ElementType` onto the NumPy dtype of the same name."""
    return np.dtype(ElementType.parse(value_type).value)


class TensorBuffer:
    """
    Exact-shape, exact-type n-dimensional storage.

    Parameters
    ----------
    shape : Shape
        Buffer shape.
    value_type : ElementType
        Element type of the buffer.
    generation : int, optional
        Graph generation the contents belong to. Defaults to 0.

    Notes
    -----
    - `data` is exposed for kernels and the engine; callers outside the engine
      should use `read()`, which returns a read-only view.
    - `write` copies into the existing storage, so a buffer handed out by the
      pool keeps its identity across reuse.
    """

    __slots__ = ("shape", "value_type", "data", "generation", "owner", "in_use")

    def __init__(
        self,
        shape: Shape,
        value_type: ElementType,
        generation: int = 0,
        data: Optional[np.ndarray] = None,
    ) -> None:
        self.shape = Shape(shape)
        self.value_type = ElementType.parse(value_type)
        dtype = to_numpy_dtype(self.value_type)
        if data is None:
            data = np.empty(self.shape, dtype=dtype)
        elif data.shape != tuple(self.shape) or data.dtype != dtype:
            raise ShapeError(
                "buffer",
                f"storage of dtype {data.dtype} does not match {self.value_type}",
                (data.shape, self.shape),
            )
        self.data = data
        self.generation = generation
        self.owner: Optional[int] = None
        self.in_use = False

    def __repr__(self) -> str:
        return (
            f"TensorBuffer(shape={self.shape}, type={self.value_type}, "
            f"generation={self.generation}, owner={self.owner})"
        )

    @property
    def nbytes(self) -> int:
        return int(self.data.nbytes)

    def write(self, array: Any) -> None:
        """
        Copy ``array`` into the buffer.

        Raises
        ------
        ShapeError
            If ``array`` does not have exactly the buffer's shape.
        """
        src = np.asarray(array)
        if src.shape != tuple(self.shape):
            raise ShapeError("buffer.write", "shape mismatch", (src.shape, self.shape))
        np.copyto(self.data, src, casting="same_kind")

    def fill(self, value: float) -> None:
        self.data.fill(value)

    def read(self) -> np.ndarray:
        """Return a read-only view of the contents."""
        view = self.data.view()
        view.flags.writeable = False
        return view
