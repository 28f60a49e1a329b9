"""
Kernel registry and dispatch.

Every node kind's numeric forward/backward rule is a `NodeOp` subclass
registered under a ``(kind, element type, device)`` key. The graph resolves
the kernel once when a node is constructed (so an unsupported combination is
a construction-time failure) and again when it evaluates the node.

Usage example
-------------
Registering a kernel:

    @KernelRegistry.register(NodeKind.EXP)
    class ExpOp(NodeOp):
        @staticmethod
        def forward(ctx, x): ...
        @staticmethod
        def backward(ctx, adj, value, x): ...

Resolving it:

    op = KernelRegistry.lookup(NodeKind.EXP, ElementType.FLOAT32, Device("cpu"))

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Kernels default to the CPU device and the floating point element types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, ClassVar, Dict, Iterable, Tuple, Type, TypeVar

from ...domain._errors import DeviceNotSupportedError, KernelNotFoundError
from ...domain._node_op import NodeOp
from ...domain._types import FLOAT_TYPES, ElementType
from ...domain.device._device import Device

if TYPE_CHECKING:
    from ..graph._kinds import NodeKind

T = TypeVar("T", bound=Type[NodeOp])

KernelKey = Tuple["NodeKind", ElementType, Device]


class KernelRegistry:
    """
    Registry of node kernels keyed by ``(kind, element type, device)``.

    Usage
    -----
    Register:
        @KernelRegistry.register(NodeKind.PLUS, types=ALL_TYPES)
        class PlusOp(NodeOp): ...

    Dispatch:
        KernelRegistry.lookup(NodeKind.PLUS, ElementType.INT32, Device("cpu"))
    """

    KERNELS: ClassVar[Dict[KernelKey, Type[NodeOp]]] = {}

    @classmethod
    def register(
        cls,
        *kinds: NodeKind,
        device: str = "cpu",
        types: Iterable[ElementType] = FLOAT_TYPES,
        overwrite: bool = False,
    ) -> Callable[[T], T]:
        """
        Decorator registering a `NodeOp` subclass for one or more kinds.

        Parameters
        ----------
        *kinds : NodeKind
            Kinds implemented by the decorated kernel.
        device : str
            Device the kernel runs on.
        types : Iterable[ElementType]
            Element types (of the node value) the kernel supports.
        overwrite : bool
            If False (default), raises if a key is already registered.
        """
        if not kinds:
            raise ValueError("register() needs at least one NodeKind")
        dev = Device(device)
        types = tuple(ElementType.parse(t) for t in types)

        def decorator(op: T) -> T:
            if not (isinstance(op, type) and issubclass(op, NodeOp)):
                raise TypeError(f"Kernels must subclass NodeOp, got {op!r}")
            for kind in kinds:
                for t in types:
                    key = (kind, t, dev)
                    if not overwrite and key in cls.KERNELS:
                        raise ValueError(f"Kernel already registered: {kind.value}/{t}/{dev}")
                    cls.KERNELS[key] = op
            return op

        return decorator

    @classmethod
    def lookup(cls, kind: NodeKind, value_type: ElementType, device: Device) -> Type[NodeOp]:
        """
        Resolve the kernel for a node.

        Raises
        ------
        DeviceNotSupportedError
            If no kernel of this kind exists for the device at all.
        KernelNotFoundError
            If the device has kernels for this kind but not for the type.
        """
        dev = Device(device)
        op = cls.KERNELS.get((kind, value_type, dev))
        if op is not None:
            return op
        if any(k == kind and d == dev for (k, _, d) in cls.KERNELS):
            raise KernelNotFoundError(kind.value, str(value_type), str(dev))
        raise DeviceNotSupportedError(kind.value, str(dev))

    @classmethod
    def supported_types(cls, kind: NodeKind, device: Device) -> tuple[ElementType, ...]:
        dev = Device(device)
        return tuple(
            sorted({t for (k, t, d) in cls.KERNELS if k == kind and d == dev}, key=lambda t: t.value)
        )

    @classmethod
    def missing(cls, device: str = "cpu") -> tuple[NodeKind, ...]:
        """Return the kinds that have no kernel on ``device``."""
        from ..graph._kinds import NodeKind

        dev = Device(device)
        present = {k for (k, _, d) in cls.KERNELS if d == dev}
        return tuple(k for k in NodeKind if k not in present)
