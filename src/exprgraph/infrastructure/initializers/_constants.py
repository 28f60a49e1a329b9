"""
Deterministic initializers: fills that depend only on their arguments.

Registered strategies
---------------------
- ``zeros`` / ``ones``: constant fills.
- ``from_value``: fill with one scalar.
- ``from_vector``: copy a flat or shaped sequence, which must hold exactly as
  many elements as the leaf.
- ``eye``: identity in the last two axes (broadcast over leading axes).
"""

import numpy as np

from ...domain._errors import ShapeError
from ._base import Initializer


@Initializer.register_initializer("zeros", deterministic=True)
def _zeros(data: np.ndarray, rng) -> None:
    data.fill(0)


@Initializer.register_initializer("ones", deterministic=True)
def _ones(data: np.ndarray, rng) -> None:
    data.fill(1)


@Initializer.register_initializer("from_value", deterministic=True)
def _from_value(data: np.ndarray, rng, value) -> None:
    data.fill(value)


@Initializer.register_initializer("from_vector")
def _from_vector(data: np.ndarray, rng, values) -> None:
    src = np.asarray(values)
    if src.size != data.size:
        raise ShapeError(
            "from_vector",
            f"expected {data.size} values, got {src.size}",
            (src.shape, data.shape),
        )
    data[...] = src.reshape(data.shape)


@Initializer.register_initializer("eye", deterministic=True)
def _eye(data: np.ndarray, rng) -> None:
    if data.ndim < 2:
        raise ShapeError("eye", "identity initializer needs rank >= 2", (data.shape,))
    data.fill(0)
    n = min(data.shape[-2], data.shape[-1])
    idx = np.arange(n)
    data[..., idx, idx] = 1


def zeros() -> Initializer:
    return Initializer("zeros")


def ones() -> Initializer:
    return Initializer("ones")


def from_value(value) -> Initializer:
    """Fill every element with ``value``."""
    return Initializer("from_value", value)


def from_vector(values) -> Initializer:
    """Copy ``values`` (any array-like with the leaf's element count)."""
    return Initializer("from_vector", np.array(values, copy=True))


def eye() -> Initializer:
    return Initializer("eye")
