"""
Execution devices.

A device is the third component of a kernel key ``(kind, element type,
device)``. Graphs accept device strings (``"cpu"``, ``"cuda"``,
``"cuda:<n>"``) and normalize them to `Device` once, at construction.

Only CPU kernels are registered. A CUDA device is a valid configuration, but
every kernel lookup on it fails with `DeviceNotSupportedError`.
"""

from enum import Enum
import re
from typing import Optional, Union

_DEVICE_RE = re.compile(r"^(?P<kind>cpu|cuda)(?::(?P<index>\d+))?$")


class DeviceType(Enum):
    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Normalized, hashable device descriptor.

    Parameters
    ----------
    spec : str | Device
        ``"cpu"``, ``"cuda"`` (same as ``"cuda:0"``) or ``"cuda:<n>"``.

    Raises
    ------
    ValueError
        If ``spec`` is not a recognised device string, or names a CPU index.
    """

    __slots__ = ("type", "index")

    def __init__(self, spec: Union[str, "Device"] = "cpu") -> None:
        if isinstance(spec, Device):
            self.type: DeviceType = spec.type
            self.index: Optional[int] = spec.index
            return

        m = _DEVICE_RE.match(str(spec).strip().lower())
        if m is None:
            raise ValueError(f"unknown device {spec!r}; expected 'cpu' or 'cuda[:<n>]'")
        self.type = DeviceType(m.group("kind"))
        index = m.group("index")
        if self.type is DeviceType.CPU:
            if index is not None:
                raise ValueError(f"cpu does not take an index, got {spec!r}")
            self.index = None
        else:
            self.index = int(index) if index is not None else 0

    @property
    def key(self) -> tuple:
        return (self.type, self.index)

    def __str__(self) -> str:
        if self.index is None:
            return self.type.value
        return f"{self.type.value}:{self.index}"

    def __repr__(self) -> str:
        return f"Device({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            try:
                other = Device(other)
            except ValueError:
                return False
        if not isinstance(other, Device):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU
