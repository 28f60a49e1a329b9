"""
Kernel registry and the CPU kernel set.

Importing this package registers a NumPy kernel for every `NodeKind`.
"""

from ._broadcast import sum_to_shape
from ._registry import KernelRegistry
from . import _leaf, _elementwise, _comparison, _reduction, _shape_ops  # noqa: F401
from . import _indexing, _linalg, _special, _pooling  # noqa: F401

__all__ = [KernelRegistry.__name__, sum_to_shape.__name__]
