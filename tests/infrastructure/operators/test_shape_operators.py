import unittest

import numpy as np

import exprgraph as eg


def _param(g, name, values):
    arr = np.asarray(values, dtype=np.float64)
    return g.param(name, arr.shape, init=arr)


def _const(g, values, value_type=None):
    arr = np.asarray(values)
    return g.constant(arr.shape, init=arr, value_type=value_type)


def _eval(g, y):
    g.forward(y)
    return np.array(g.value(y))


class TestTranspose(unittest.TestCase):
    def test_default_swaps_last_two_axes(self) -> None:
        g = eg.ExpressionGraph()
        v = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        y = eg.transpose(_const(g, v))
        self.assertEqual(y.shape, (2, 4, 3))
        np.testing.assert_array_equal(_eval(g, y), np.swapaxes(v, -1, -2))

    def test_explicit_axes(self) -> None:
        g = eg.ExpressionGraph()
        v = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        y = eg.transpose(_const(g, v), (2, 0, -2))
        np.testing.assert_array_equal(_eval(g, y), np.transpose(v, (2, 0, 1)))

    def test_identity_permutation_returns_input(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((2, 3))
        self.assertIs(eg.transpose(x, (0, 1)), x)
        self.assertIs(eg.swap_axes(x, 1, -1), x)

    def test_invalid_permutations(self) -> None:
        g = eg.ExpressionGraph()
        with self.assertRaises(eg.ShapeError):
            eg.transpose(g.constant((3,)))
        with self.assertRaises(eg.ShapeError):
            eg.transpose(g.constant((2, 3)), (0, 0))
        with self.assertRaises(eg.AxisError):
            eg.transpose(g.constant((2, 3)), (0, 2))

    def test_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        w = _const(g, [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        y = eg.sum(eg.sum(eg.transpose(x) * w, axis=0), axis=1)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [[1, 3, 5], [2, 4, 6]])


class TestReshape(unittest.TestCase):
    def test_reshape_and_flatten(self) -> None:
        g = eg.ExpressionGraph()
        x = _const(g, np.arange(6.0).reshape(2, 3))
        np.testing.assert_array_equal(_eval(g, eg.reshape(x, (3, 2))), np.arange(6.0).reshape(3, 2))
        np.testing.assert_array_equal(_eval(g, eg.flatten(x)), np.arange(6.0))
        self.assertIs(eg.reshape(x, (2, 3)), x)
        with self.assertRaises(eg.ShapeError):
            eg.reshape(x, (4, 2))

    def test_flatten_2d_and_atleast(self) -> None:
        g = eg.ExpressionGraph()
        self.assertEqual(eg.flatten_2d(g.constant((2, 3, 4))).shape, (6, 4))
        v = g.constant((3,))
        self.assertEqual(eg.atleast_1d(v).shape, (3,))
        self.assertEqual(eg.atleast_2d(v).shape, (1, 3))
        self.assertEqual(eg.atleast_3d(v).shape, (1, 1, 3))
        self.assertEqual(eg.atleast_4d(v).shape, (1, 1, 1, 3))


class TestConcatenate(unittest.TestCase):
    def test_values_and_gradient(self) -> None:
        g = eg.ExpressionGraph()
        a = _param(g, "a", [[1.0, 2.0]])
        b = _param(g, "b", [[3.0, 4.0], [5.0, 6.0]])
        y = eg.concatenate([a, b], axis=0)
        self.assertEqual(y.shape, (3, 2))
        np.testing.assert_array_equal(_eval(g, y), [[1, 2], [3, 4], [5, 6]])

        w = _const(g, [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        loss = eg.sum(eg.sum(y * w, axis=1), axis=0)
        g.forward(loss)
        g.backward(loss)
        np.testing.assert_allclose(g.gradient(a), [[1, 2]])
        np.testing.assert_allclose(g.gradient(b), [[3, 4], [5, 6]])

    def test_single_input_is_returned(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((2,))
        self.assertIs(eg.concatenate([x]), x)

    def test_shape_mismatch(self) -> None:
        g = eg.ExpressionGraph()
        with self.assertRaises(eg.ShapeError):
            eg.concatenate([g.constant((2, 3)), g.constant((2, 4))], axis=0)
        with self.assertRaises(eg.ShapeError):
            eg.concatenate([g.constant((2, 3)), g.constant((3,))], axis=0)
        with self.assertRaises(ValueError):
            eg.concatenate([])

    def test_repeat(self) -> None:
        g = eg.ExpressionGraph()
        x = _const(g, [[1.0, 2.0]])
        np.testing.assert_array_equal(_eval(g, eg.repeat(x, 3, axis=0)), [[1, 2]] * 3)
        self.assertIs(eg.repeat(x, 1), x)
        with self.assertRaises(ValueError):
            eg.repeat(x, 0)


class TestSlice(unittest.TestCase):
    def setUp(self) -> None:
        self.g = eg.ExpressionGraph()
        self.v = np.arange(12.0).reshape(3, 4)
        self.x = _const(self.g, self.v)

    def test_integer_index_keeps_axis(self) -> None:
        y = eg.slice(self.x, 0, 1)
        self.assertEqual(y.shape, (1, 4))
        np.testing.assert_array_equal(_eval(self.g, y), self.v[1:2])
        np.testing.assert_array_equal(_eval(self.g, eg.slice(self.x, 1, -1)), self.v[:, 3:4])

    def test_ranges_and_slices(self) -> None:
        np.testing.assert_array_equal(_eval(self.g, eg.slice(self.x, 1, range(0, 4, 2))), self.v[:, 0:4:2])
        np.testing.assert_array_equal(_eval(self.g, eg.slice(self.x, -1, slice(1, None))), self.v[:, 1:])
        np.testing.assert_array_equal(_eval(self.g, eg.narrow(self.x, 0, 1, 2)), self.v[1:3])

    def test_negative_range_bounds_count_from_the_end(self) -> None:
        y = eg.slice(self.x, 1, range(-2, 4))
        self.assertEqual(y.shape, (3, 2))
        np.testing.assert_array_equal(_eval(self.g, y), self.v[:, 2:4])
        np.testing.assert_array_equal(_eval(self.g, eg.slice(self.x, 1, range(-3, -1))), self.v[:, 1:3])
        np.testing.assert_array_equal(_eval(self.g, eg.slice(self.x, 0, range(-1, 3))), self.v[2:3])

    def test_full_range_returns_input(self) -> None:
        self.assertIs(eg.slice(self.x, 0, slice(None)), self.x)

    def test_invalid_indices(self) -> None:
        with self.assertRaises(eg.ShapeError):
            eg.slice(self.x, 0, 3)
        with self.assertRaises(ValueError):
            eg.slice(self.x, 0, slice(None, None, -1))
        with self.assertRaises(TypeError):
            eg.slice(self.x, 0, "a")

    def test_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [1.0, 2.0, 3.0, 4.0])
        y = eg.sum(eg.slice(x, 0, slice(1, 3)))
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [0, 1, 1, 0])


class TestShift(unittest.TestCase):
    def test_values(self) -> None:
        g = eg.ExpressionGraph()
        x = _const(g, [1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(_eval(g, eg.shift(x, [1])), [0, 1, 2, 3])
        np.testing.assert_array_equal(_eval(g, eg.shift(x, [-1])), [2, 3, 4, 0])
        np.testing.assert_array_equal(_eval(g, eg.shift(x, [2], pad_value=-1.0)), [-1, -1, 1, 2])
        self.assertIs(eg.shift(x, [0]), x)

    def test_missing_offsets_are_zero(self) -> None:
        g = eg.ExpressionGraph()
        v = np.arange(6.0).reshape(2, 3)
        y = eg.shift(_const(g, v), [1])
        np.testing.assert_array_equal(_eval(g, y), [[0, 0, 0], [0, 1, 2]])
        with self.assertRaises(eg.ShapeError):
            eg.shift(_const(g, v), [1, 0, 0])

    def test_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [1.0, 2.0, 3.0, 4.0])
        y = eg.sum(eg.shift(x, [1]))
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [1, 1, 1, 0])


class TestCastAndClip(unittest.TestCase):
    def test_cast(self) -> None:
        g = eg.ExpressionGraph()
        x = _const(g, [1.7, -2.2])
        self.assertIs(eg.cast(x, "float32"), x)
        y = eg.cast(x, "int32")
        self.assertIs(y.value_type, eg.ElementType.INT32)
        np.testing.assert_array_equal(_eval(g, y), [1, -2])

    def test_clip(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [-3.0, 0.5, 2.0])
        y = eg.clip(x, 1.0)
        np.testing.assert_allclose(_eval(g, y), [-1.0, 0.5, 1.0])
        loss = eg.sum(y)
        g.forward(loss)
        g.backward(loss)
        np.testing.assert_allclose(g.gradient(x), [0.0, 1.0, 0.0])
        with self.assertRaises(ValueError):
            eg.clip(x, 0.0)

    def test_constant_like(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((2, 2), value_type="float64")
        c = eg.constant_like(x, 3.0)
        self.assertEqual(c.shape, (2, 2))
        self.assertIs(c.value_type, eg.ElementType.FLOAT64)
        np.testing.assert_array_equal(_eval(g, c), np.full((2, 2), 3.0))


if __name__ == "__main__":
    unittest.main()
