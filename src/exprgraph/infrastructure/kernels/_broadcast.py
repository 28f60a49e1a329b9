"""
Inverse broadcasting for gradients.

Elementwise kernels return gradients in the broadcast (output) shape. Before a
contribution is accumulated into an input, the engine reduces it back to the
input's shape with `sum_to_shape`: the gradient is summed over every axis the
forward pass broadcast.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import ShapeError


def _broadcast_axes(grad_shape: tuple[int, ...], target_shape: tuple[int, ...]) -> tuple[int, ...]:
    # leading axes the target lacks, plus target axes of size 1 that grew
    lead = len(grad_shape) - len(target_shape)
    if lead < 0:
        raise ShapeError("sum_to_shape", "target has a higher rank than the gradient", (grad_shape, target_shape))
    axes = list(range(lead))
    for i, t in enumerate(target_shape):
        g = grad_shape[lead + i]
        if t == g:
            continue
        if t != 1:
            raise ShapeError(
                "sum_to_shape",
                f"axis {lead + i} of size {g} cannot reduce to {t}",
                (grad_shape, target_shape),
            )
        axes.append(lead + i)
    return tuple(axes)


def sum_to_shape(grad: np.ndarray, target_shape: tuple[int, ...]) -> np.ndarray:
    """
    Reduce ``grad`` to ``target_shape`` by summing broadcast axes.

    Returns ``grad`` unchanged when the shapes already agree.

    Raises
    ------
    ShapeError
        If ``target_shape`` does not broadcast to ``grad.shape``.
    """
    grad = np.asarray(grad)
    target_shape = tuple(int(d) for d in target_shape)
    if grad.shape == target_shape:
        return grad
    axes = _broadcast_axes(grad.shape, target_shape)
    return grad.sum(axis=axes).reshape(target_shape)
