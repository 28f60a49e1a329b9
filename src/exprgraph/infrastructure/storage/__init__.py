from ._buffer import TensorBuffer, to_numpy_dtype
from ._pool import BufferPool

__all__ = [TensorBuffer.__name__, BufferPool.__name__, to_numpy_dtype.__name__]
