import unittest

import numpy as np

from exprgraph import NodeInitializer, ShapeError
from exprgraph.infrastructure.initializers import (
    Initializer,
    as_initializer,
    dropout,
    eye,
    from_value,
    from_vector,
    glorot_normal,
    glorot_uniform,
    normal,
    ones,
    uniform,
    zeros,
)


def _fill(init, shape, seed=0, dtype=np.float64):
    data = np.full(shape, np.nan, dtype=dtype)
    init(data, np.random.default_rng(seed))
    return data


class TestConstantInitializers(unittest.TestCase):
    def test_zeros_and_ones(self) -> None:
        np.testing.assert_array_equal(_fill(zeros(), (2, 2)), np.zeros((2, 2)))
        np.testing.assert_array_equal(_fill(ones(), (3,)), np.ones(3))

    def test_from_value(self) -> None:
        np.testing.assert_array_equal(_fill(from_value(2.5), (2,)), [2.5, 2.5])

    def test_from_vector_reshapes(self) -> None:
        out = _fill(from_vector([1, 2, 3, 4]), (2, 2))
        np.testing.assert_array_equal(out, [[1, 2], [3, 4]])

    def test_from_vector_size_mismatch(self) -> None:
        with self.assertRaises(ShapeError):
            _fill(from_vector([1, 2, 3]), (2, 2))

    def test_from_vector_copies_its_input(self) -> None:
        src = np.array([1.0, 2.0])
        init = from_vector(src)
        src[0] = 9.0
        np.testing.assert_array_equal(_fill(init, (2,)), [1.0, 2.0])

    def test_eye(self) -> None:
        np.testing.assert_array_equal(_fill(eye(), (2, 3)), [[1, 0, 0], [0, 1, 0]])
        with self.assertRaises(ShapeError):
            _fill(eye(), (3,))


class TestRandomInitializers(unittest.TestCase):
    def test_uniform_bounds(self) -> None:
        out = _fill(uniform(-0.5, 0.5), (100,))
        self.assertTrue(np.all(out >= -0.5) and np.all(out < 0.5))

    def test_normal_is_seeded(self) -> None:
        a = _fill(normal(0.0, 2.0), (50,), seed=7)
        b = _fill(normal(0.0, 2.0), (50,), seed=7)
        np.testing.assert_array_equal(a, b)

    def test_glorot_uniform_bound(self) -> None:
        out = _fill(glorot_uniform(), (20, 30))
        bound = np.sqrt(6.0 / 50.0)
        self.assertLessEqual(np.abs(out).max(), bound)

    def test_glorot_normal_scale(self) -> None:
        out = _fill(glorot_normal(), (200, 300))
        self.assertAlmostEqual(out.std(), np.sqrt(2.0 / 500.0), delta=0.005)

    def test_dropout_mask_values(self) -> None:
        out = _fill(dropout(0.5), (1000,))
        self.assertTrue(set(np.unique(out)) <= {0.0, 2.0})
        self.assertAlmostEqual(out.mean(), 1.0, delta=0.15)
        np.testing.assert_array_equal(_fill(dropout(0.0), (4,)), np.ones(4))

    def test_dropout_probability_range(self) -> None:
        for p in (-0.1, 1.0, 1.5):
            with self.assertRaises(ValueError):
                dropout(p)


class TestInitializerRegistry(unittest.TestCase):
    def test_unknown_name(self) -> None:
        with self.assertRaises(ValueError):
            Initializer("does_not_exist")

    def test_duplicate_name(self) -> None:
        with self.assertRaises(ValueError):
            Initializer.register_initializer("zeros")(lambda data, rng: None)

    def test_available(self) -> None:
        names = Initializer.available()
        for name in ("zeros", "ones", "uniform", "glorot_uniform", "dropout", "eye"):
            self.assertIn(name, names)

    def test_cache_key(self) -> None:
        self.assertEqual(from_value(1.0).cache_key, from_value(1.0).cache_key)
        self.assertNotEqual(from_value(1.0).cache_key, from_value(2.0).cache_key)
        self.assertIsNone(uniform().cache_key)
        self.assertIsNone(from_vector([1.0]).cache_key)

    def test_repr(self) -> None:
        self.assertEqual(repr(uniform(0.0, 2.0)), "Initializer('uniform', 0.0, 2.0)")


class TestAsInitializer(unittest.TestCase):
    def test_passes_initializers_through(self) -> None:
        init = ones()
        self.assertIs(as_initializer(init), init)

    def test_accepts_names_scalars_and_arrays(self) -> None:
        self.assertEqual(as_initializer("ones").name, "ones")
        self.assertEqual(as_initializer(3).name, "from_value")
        self.assertEqual(as_initializer(np.float32(3)).name, "from_value")
        self.assertEqual(as_initializer([1, 2]).name, "from_vector")
        self.assertIsInstance(as_initializer(np.zeros(2)), NodeInitializer)


if __name__ == "__main__":
    unittest.main()
