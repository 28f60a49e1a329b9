from typing import TYPE_CHECKING, Any
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from ._node import Node


@dataclass
class Context:
    """
    Evaluation context handed to a kernel for one node.

    A fresh `Context` is created every time a node is forward evaluated
    (including recomputation after a checkpoint release) and kept on the node
    for its backward step.

    Attributes
    ----------
    node : Node
        The node being evaluated. Kernels read ``node.attrs``, ``node.shape``
        and ``node.value_type`` from it.
    rng : numpy.random.Generator
        The owning graph's random generator (used by leaf initializers).
    saved_tensors : list
        Arrays explicitly saved during forward for use in backward (masks,
        argmax positions, cached intermediates).
    saved_meta : dict[str, Any]
        Non-array metadata required for backward.
    """

    node: "Node"
    rng: Any = None
    saved_tensors: list = field(default_factory=list)
    saved_meta: dict[str, Any] = field(default_factory=dict)

    @property
    def attrs(self) -> dict[str, Any]:
        return self.node.attrs

    @property
    def dtype(self):
        return self.node.dtype

    @property
    def shape(self):
        return self.node.shape

    def save_for_backward(self, *arrays: Any) -> None:
        """
        Save arrays for use during the backward computation.

        Notes
        -----
        Saved arrays are released together with the node value; they are
        recreated whenever the value is recomputed.
        """
        self.saved_tensors.extend(arrays)
