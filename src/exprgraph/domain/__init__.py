from ._errors import (
    AxisError,
    BufferAllocationError,
    DeviceNotSupportedError,
    GraphMismatchError,
    GraphUsageError,
    KernelNotFoundError,
    RecomputationError,
    ShapeError,
    TypePromotionError,
)
from ._initializer import NodeInitializer
from ._node_op import NodeOp
from ._promotion import broadcast_shape, broadcast_shapes, promote_types, promote_all
from ._shape import MAX_RANK, Shape
from ._types import ALL_TYPES, FLOAT_TYPES, INDEX_TYPE, INT_TYPES, ElementType
from .device import Device, DeviceType
