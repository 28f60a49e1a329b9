"""
Random initializers.

All strategies draw from the generator owned by the graph, so a graph built
with ``GraphConfig(seed=...)`` produces the same parameters on every run.

Implemented variants
--------------------
- ``uniform``: ``U(low, high)``.
- ``normal``: ``N(mean, stddev^2)``.
- ``glorot_uniform``: ``U(-sqrt(6/(fan_in+fan_out)), +sqrt(6/(fan_in+fan_out)))``.
- ``glorot_normal``: normal with ``std = sqrt(2 / (fan_in + fan_out))``.
- ``dropout``: Bernoulli keep mask with values ``0`` and ``1/(1-p)``.
"""

import math

import numpy as np

from ...domain._initializer import _calculate_fan_in_and_fan_out
from ._base import Initializer


def _generator(rng) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


@Initializer.register_initializer("uniform")
def _uniform(data: np.ndarray, rng, low: float = 0.0, high: float = 1.0) -> None:
    data[...] = _generator(rng).uniform(low, high, size=data.shape)


@Initializer.register_initializer("normal")
def _normal(data: np.ndarray, rng, mean: float = 0.0, stddev: float = 1.0) -> None:
    data[...] = _generator(rng).normal(mean, stddev, size=data.shape)


@Initializer.register_initializer("glorot_uniform")
def _glorot_uniform(data: np.ndarray, rng) -> None:
    """
    Apply Glorot (Xavier) uniform initialization.

    Matrices are laid out as ``(in, out)``, so fan-in is the second to last
    axis and fan-out the last.
    """
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(data.shape))
    fan_in = max(1, int(fan_in))
    fan_out = max(1, int(fan_out))

    bound = math.sqrt(6.0 / float(fan_in + fan_out))
    data[...] = _generator(rng).uniform(-bound, bound, size=data.shape)


@Initializer.register_initializer("glorot_normal")
def _glorot_normal(data: np.ndarray, rng) -> None:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(data.shape))
    fan_in = max(1, int(fan_in))
    fan_out = max(1, int(fan_out))

    std = math.sqrt(2.0 / float(fan_in + fan_out))
    data[...] = _generator(rng).normal(0.0, std, size=data.shape)


@Initializer.register_initializer("dropout")
def _dropout(data: np.ndarray, rng, prob: float) -> None:
    """
    Fill a dropout mask.

    Each element is kept with probability ``1 - prob``; kept elements are
    scaled by ``1 / (1 - prob)`` so the expected value is unchanged.
    """
    if prob <= 0.0:
        data.fill(1)
        return
    keep = _generator(rng).random(size=data.shape) >= prob
    data[...] = keep * (1.0 / (1.0 - prob))


def uniform(low: float = 0.0, high: float = 1.0) -> Initializer:
    return Initializer("uniform", low, high)


def normal(mean: float = 0.0, stddev: float = 1.0) -> Initializer:
    return Initializer("normal", mean, stddev)


def glorot_uniform() -> Initializer:
    return Initializer("glorot_uniform")


def glorot_normal() -> Initializer:
    return Initializer("glorot_normal")


def dropout(prob: float) -> Initializer:
    """Bernoulli keep mask for dropout probability ``prob`` in ``[0, 1)``."""
    if not 0.0 <= prob < 1.0:
        raise ValueError(f"dropout probability must be in [0, 1), got {prob}")
    return Initializer("dropout", float(prob))
