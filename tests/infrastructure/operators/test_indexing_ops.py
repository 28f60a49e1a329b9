import unittest

import numpy as np

import exprgraph as eg

V = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


def _eval(g, y):
    g.forward(y)
    return np.array(g.value(y))


class TestGather(unittest.TestCase):
    def test_gather_last_axis(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(V.shape, init=V)
        y = eg.gather(x, -1, g.indices([[2], [0]]))
        self.assertEqual(y.shape, (2, 1))
        np.testing.assert_array_equal(_eval(g, y), [[3.0], [4.0]])

    def test_gather_with_broadcast_indices(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(V.shape, init=V)
        y = eg.gather(x, 0, g.indices([[1, 0, 1]]))
        np.testing.assert_array_equal(_eval(g, y), [[4.0, 2.0, 6.0]])
        z = eg.gather(x, 1, g.indices([[0, 0]]))
        np.testing.assert_array_equal(_eval(g, z), [[1.0, 1.0], [4.0, 4.0]])

    def test_repeated_indices_accumulate(self) -> None:
        g = eg.ExpressionGraph()
        x = g.param("x", (1, 3), init=[1.0, 2.0, 3.0])
        y = eg.sum(eg.gather(x, 1, g.indices([[0, 0, 2]])), axis=1)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [[2.0, 0.0, 1.0]])

    def test_validation(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(V.shape, init=V)
        with self.assertRaises(eg.ShapeError):
            eg.gather(x, 1, g.indices([0, 1]))
        with self.assertRaises(eg.ShapeError):
            eg.gather(x, 1, g.indices([[0], [1], [2]]))
        with self.assertRaises(eg.TypePromotionError):
            eg.gather(x, 1, g.constant((2, 1)))
        with self.assertRaises(ValueError):
            g.indices([-1])
        with self.assertRaises(ValueError):
            g.indices([0.5])

    def test_indices_type(self) -> None:
        g = eg.ExpressionGraph()
        idx = g.indices([[1, 2]])
        self.assertIs(idx.value_type, eg.INDEX_TYPE)
        self.assertEqual(idx.shape, (1, 2))


class TestIndexSelect(unittest.TestCase):
    def test_rows_and_cols(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(V.shape, init=V)
        np.testing.assert_array_equal(_eval(g, eg.rows(x, [1, 0, 1])), V[[1, 0, 1]])
        np.testing.assert_array_equal(_eval(g, eg.cols(x, [2])), V[:, [2]])
        y = eg.index_select(x, 0, g.indices([1]))
        np.testing.assert_array_equal(_eval(g, y), V[[1]])

    def test_gradient_accumulates(self) -> None:
        g = eg.ExpressionGraph()
        x = g.param("x", V.shape, init=V)
        y = eg.sum(eg.sum(eg.rows(x, [1, 1, 0]), axis=1), axis=0)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [[1.0] * 3, [2.0] * 3])


if __name__ == "__main__":
    unittest.main()
