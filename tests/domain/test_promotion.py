import itertools
import unittest

from exprgraph.domain import (
    ElementType,
    ShapeError,
    TypePromotionError,
    broadcast_shape,
    broadcast_shapes,
    promote_types,
)

SHAPES = [(), (1,), (3,), (2, 1), (2, 3), (1, 3), (4, 1, 1), (4, 2, 3), (1, 2, 1)]


def _try_broadcast(a, b):
    try:
        return broadcast_shape(a, b)
    except ShapeError:
        return None


class TestBroadcast(unittest.TestCase):
    def test_right_aligned_broadcast(self) -> None:
        self.assertEqual(broadcast_shape((2, 1, 3), (4, 3)), (2, 4, 3))
        self.assertEqual(broadcast_shape((), (2, 2)), (2, 2))
        self.assertEqual(broadcast_shape((5, 1), (1, 6)), (5, 6))

    def test_incompatible_shapes_raise(self) -> None:
        with self.assertRaises(ShapeError) as cm:
            broadcast_shape((2, 3), (3, 2), "plus")
        self.assertEqual(cm.exception.op, "plus")
        self.assertEqual(cm.exception.shapes, ((2, 3), (3, 2)))

    def test_symmetry(self) -> None:
        for a, b in itertools.product(SHAPES, repeat=2):
            self.assertEqual(_try_broadcast(a, b), _try_broadcast(b, a), (a, b))

    def test_associativity(self) -> None:
        for a, b, c in itertools.product(SHAPES, repeat=3):
            ab = _try_broadcast(a, b)
            bc = _try_broadcast(b, c)
            if ab is None or bc is None:
                continue
            left = _try_broadcast(ab, c)
            right = _try_broadcast(a, bc)
            self.assertEqual(left, right, (a, b, c))

    def test_broadcast_shapes_folds(self) -> None:
        self.assertEqual(broadcast_shapes((3,), (2, 1), (4, 1, 1)), (4, 2, 3))
        self.assertEqual(broadcast_shapes(), ())


class TestPromotion(unittest.TestCase):
    def test_identical_types(self) -> None:
        for t in ElementType:
            self.assertIs(promote_types(t, t), t)

    def test_float_pairs_take_the_wider_type(self) -> None:
        self.assertIs(promote_types("float16", "float32"), ElementType.FLOAT32)
        self.assertIs(promote_types("float64", "float32"), ElementType.FLOAT64)

    def test_float_with_int_is_lossless(self) -> None:
        self.assertIs(promote_types("float16", "int8"), ElementType.FLOAT16)
        self.assertIs(promote_types("float16", "int16"), ElementType.FLOAT32)
        self.assertIs(promote_types("float32", "uint16"), ElementType.FLOAT32)
        self.assertIs(promote_types("float32", "int32"), ElementType.FLOAT64)

    def test_float_with_64_bit_int_is_rejected(self) -> None:
        with self.assertRaises(TypePromotionError):
            promote_types("float32", "int64")
        with self.assertRaises(TypePromotionError):
            promote_types("uint64", "float64")

    def test_integer_pairs(self) -> None:
        self.assertIs(promote_types("int32", "int64"), ElementType.INT64)
        self.assertIs(promote_types("uint8", "uint16"), ElementType.UINT16)
        self.assertIs(promote_types("int8", "uint8"), ElementType.INT16)
        self.assertIs(promote_types("uint32", "int16"), ElementType.INT64)
        with self.assertRaises(TypePromotionError):
            promote_types("uint64", "int8")

    def test_symmetry(self) -> None:
        def attempt(a, b):
            try:
                return promote_types(a, b)
            except TypePromotionError:
                return None

        for a, b in itertools.product(ElementType, repeat=2):
            self.assertIs(attempt(a, b), attempt(b, a), (a, b))

    def test_unknown_type_name(self) -> None:
        with self.assertRaises(ValueError):
            ElementType.parse("complex64")


if __name__ == "__main__":
    unittest.main()
