"""
Element type enumeration.

This module defines :class:`ElementType`, the closed set of numeric element
kinds a node value can have. The enumeration values are the canonical lower
case names (``"float32"``, ``"uint32"``, ...), which are also the names NumPy
uses, so infrastructure code can map an element type to a dtype without a
lookup table while the domain layer stays free of NumPy imports.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ElementType(Enum):
    """
    Enumeration of supported element types.

    Attributes
    ----------
    FLOAT16, FLOAT32, FLOAT64 : ElementType
        IEEE floating point types.
    INT8, INT16, INT32, INT64 : ElementType
        Signed integer types.
    UINT8, UINT16, UINT32, UINT64 : ElementType
        Unsigned integer types. ``UINT32`` is the index type.
    """

    FLOAT16 = "float16"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"

    def __str__(self) -> str:
        return self.value

    @property
    def size(self) -> int:
        """Size of one element in bytes."""
        return int("".join(c for c in self.value if c.isdigit())) // 8

    @property
    def is_float(self) -> bool:
        return self.value.startswith("float")

    @property
    def is_int(self) -> bool:
        return not self.is_float

    @property
    def is_signed(self) -> bool:
        return not self.value.startswith("uint")

    @property
    def mantissa_bits(self) -> int:
        """
        Number of significand bits (including the implicit bit) for float
        types; 0 for integer types.
        """
        return {"float16": 11, "float32": 24, "float64": 53}.get(self.value, 0)

    @classmethod
    def parse(cls, value: Any) -> "ElementType":
        """
        Normalize a user supplied type descriptor.

        Parameters
        ----------
        value : ElementType | str | dtype-like
            An `ElementType`, its name (``"float32"``), or any object whose
            ``str()`` or ``.name`` is such a name (e.g. a NumPy dtype).

        Returns
        -------
        ElementType

        Raises
        ------
        ValueError
            If the descriptor does not name a supported element type.
        """
        if isinstance(value, ElementType):
            return value
        name = getattr(value, "name", None)
        if not isinstance(name, str):
            name = getattr(value, "__name__", None)
        if not isinstance(name, str):
            name = str(value)
        try:
            return cls(name.lower())
        except ValueError:
            supported = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Unsupported element type {value!r}. Expected one of: {supported}"
            ) from None


FLOAT_TYPES = tuple(t for t in ElementType if t.is_float)
INT_TYPES = tuple(t for t in ElementType if t.is_int)
ALL_TYPES = tuple(ElementType)

INDEX_TYPE = ElementType.UINT32
"""Element type used for index tensors (top-k indices, gather indices)."""
