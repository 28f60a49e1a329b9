import unittest

import numpy as np

import exprgraph as eg

GRID = np.arange(16.0).reshape(1, 1, 4, 4)


def _eval(g, y):
    g.forward(y)
    return np.array(g.value(y))


class TestPooling(unittest.TestCase):
    def test_max_pooling(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(GRID.shape, init=GRID)
        y = eg.max_pooling(x, 2, 2, stride_height=2, stride_width=2)
        self.assertEqual(y.shape, (1, 1, 2, 2))
        np.testing.assert_array_equal(_eval(g, y)[0, 0], [[5, 7], [13, 15]])

    def test_avg_pooling(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(GRID.shape, init=GRID)
        y = eg.avg_pooling(x, 2, 2, stride_height=2, stride_width=2)
        np.testing.assert_allclose(_eval(g, y)[0, 0], [[2.5, 4.5], [10.5, 12.5]])

    def test_overlapping_windows(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(GRID.shape, init=GRID)
        y = eg.max_pooling(x, 2, 2)
        self.assertEqual(y.shape, (1, 1, 3, 3))
        np.testing.assert_array_equal(_eval(g, y)[0, 0], GRID[0, 0, 1:, 1:])

    def test_padding(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((1, 1, 1, 1), init=4.0)
        avg = eg.avg_pooling(x, 2, 2, pad_height=1, pad_width=1)
        np.testing.assert_allclose(_eval(g, avg)[0, 0], np.ones((2, 2)))
        mx = eg.max_pooling(x, 2, 2, pad_height=1, pad_width=1)
        np.testing.assert_allclose(_eval(g, mx)[0, 0], np.full((2, 2), 4.0))

    def test_max_pooling_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = g.param("x", GRID.shape, init=GRID)
        pooled = eg.max_pooling(x, 2, 2, stride_height=2, stride_width=2)
        y = eg.sum(eg.flatten(pooled))
        g.forward(y)
        g.backward(y)
        expected = np.zeros((4, 4))
        expected[[1, 1, 3, 3], [1, 3, 1, 3]] = 1.0
        np.testing.assert_array_equal(g.gradient(x)[0, 0], expected)

    def test_avg_pooling_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = g.param("x", GRID.shape, init=GRID)
        pooled = eg.avg_pooling(x, 2, 2, stride_height=2, stride_width=2)
        y = eg.sum(eg.flatten(pooled))
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), np.full(GRID.shape, 0.25))

    def test_validation(self) -> None:
        g = eg.ExpressionGraph()
        with self.assertRaises(eg.ShapeError):
            eg.max_pooling(g.constant((4, 4)), 2, 2)
        with self.assertRaises(eg.ShapeError):
            eg.avg_pooling(g.constant((1, 1, 2, 2)), 3, 3)
        with self.assertRaises(ValueError):
            eg.avg_pooling(g.constant((1, 1, 2, 2)), 0, 1)


class TestPoolingWithMasking(unittest.TestCase):
    def _build(self, mask, width=2, is_even=False):
        g = eg.ExpressionGraph()
        x = g.param("x", (1, 1, 4), init=[1.0, 5.0, 2.0, 3.0])
        m = g.constant((1, 1, 4), init=mask)
        return g, x, eg.pooling_with_masking(x, m, width, is_even)

    def test_masked_steps_are_skipped(self) -> None:
        g, _, y = self._build([1, 1, 1, 0])
        self.assertEqual(y.shape, (1, 1, 2))
        np.testing.assert_array_equal(_eval(g, y)[0, 0], [5.0, 2.0])

    def test_fully_masked_window_yields_zero(self) -> None:
        g, _, y = self._build([1, 1, 0, 0])
        np.testing.assert_array_equal(_eval(g, y)[0, 0], [5.0, 0.0])

    def test_is_even_drops_last_step(self) -> None:
        g, _, y = self._build([1, 1, 1, 1], is_even=True)
        np.testing.assert_array_equal(_eval(g, y)[0, 0], [5.0, 2.0])
        g, _, z = self._build([1, 1, 1, 1], width=3)
        np.testing.assert_array_equal(_eval(g, z)[0, 0], [5.0, 3.0])

    def test_gradient(self) -> None:
        g, x, y = self._build([1, 1, 1, 0])
        loss = eg.sum(eg.flatten(y))
        g.forward(loss)
        g.backward(loss)
        np.testing.assert_allclose(g.gradient(x)[0, 0], [0.0, 1.0, 1.0, 0.0])

    def test_validation(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((1, 2, 4))
        with self.assertRaises(eg.ShapeError):
            eg.pooling_with_masking(x, g.constant((1, 2, 3)), 2)
        with self.assertRaises(eg.ShapeError):
            eg.pooling_with_masking(g.constant((2, 4)), g.constant((2, 4)), 2)
        with self.assertRaises(ValueError):
            eg.pooling_with_masking(x, g.constant((1, 1, 4)), 0)


if __name__ == "__main__":
    unittest.main()
