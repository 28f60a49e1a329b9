"""
Abstract interface for node initializers.

Constant and parameter leaf nodes obtain their initial contents from an
initializer object supplied at construction. The engine treats the
initializer as an opaque fill function, invoked once when the leaf is first
evaluated. This module defines the contract; the registry and concrete
strategies live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Hashable, Optional


class NodeInitializer(ABC):
    """
    Abstract base class for leaf initializers.

    Design notes
    ------------
    - An initializer fills a preallocated array *in place*.
    - Random initializers draw from the generator passed by the graph so a
      graph seeded through its configuration is reproducible.
    - Initializers that are pure functions of their arguments expose a
      `cache_key`; the graph uses it to share constant nodes.
    """

    @abstractmethod
    def apply(self, data: Any, rng: Any) -> None:
        """
        Fill ``data`` in place.

        Parameters
        ----------
        data : ndarray
            Preallocated output with the leaf's shape and element type.
        rng : numpy.random.Generator
            Random generator owned by the graph.
        """
        ...

    @property
    def cache_key(self) -> Optional[Hashable]:
        """
        Hashable identity of the produced contents, or None if the contents
        are not deterministic (and therefore must not be shared).
        """
        return None

    def __call__(self, data: Any, rng: Any = None) -> Any:
        self.apply(data, rng)
        return data


def _calculate_fan_in_and_fan_out(shape: tuple[int, ...]) -> tuple[int, int]:
    """
    Compute both fan-in and fan-out values for a parameter shape.

    Parameters
    ----------
    shape:
        Shape of the parameter. Matrices are laid out as
        ``(in_features, out_features)``, matching ``dot(x, W)``.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    if len(shape) == 0:
        return 1, 1
    if len(shape) == 1:
        return shape[0], shape[0]
    if len(shape) == 2:
        fan_in, fan_out = shape
        return fan_in, fan_out

    receptive_field = 1
    for d in shape[:-2]:
        receptive_field *= int(d)
    return int(shape[-2]) * receptive_field, int(shape[-1]) * receptive_field
