"""
Leaf initializers.

Importing this package registers every built-in strategy with `Initializer`.
`as_initializer` turns the loose values accepted by graph leaf constructors
(initializers, scalars, array-likes) into an `Initializer`.
"""

from typing import Any

import numpy as np

from ...domain._initializer import NodeInitializer
from ._base import Initializer
from ._constants import eye, from_value, from_vector, ones, zeros
from ._random import dropout, glorot_normal, glorot_uniform, normal, uniform


def as_initializer(init: Any) -> NodeInitializer:
    """
    Normalize ``init`` into a `NodeInitializer`.

    Accepts a `NodeInitializer`, a registered strategy name, a Python or NumPy
    scalar (``from_value``) or an array-like (``from_vector``).
    """
    if isinstance(init, NodeInitializer):
        return init
    if isinstance(init, str):
        return Initializer(init)
    if np.ndim(init) == 0 and not isinstance(init, (list, tuple)):
        return from_value(np.asarray(init).item())
    return from_vector(init)


__all__ = [
    "Initializer",
    "as_initializer",
    "dropout",
    "eye",
    "from_value",
    "from_vector",
    "glorot_normal",
    "glorot_uniform",
    "normal",
    "ones",
    "uniform",
    "zeros",
]
