import unittest

import numpy as np

import exprgraph as eg

V = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


def _param(g, name, values):
    arr = np.asarray(values, dtype=np.float64)
    return g.param(name, arr.shape, init=arr)


def _eval(g, y):
    g.forward(y)
    return np.array(g.value(y))


class TestReductions(unittest.TestCase):
    def setUp(self) -> None:
        self.g = eg.ExpressionGraph(default_type="float64")
        self.x = self.g.constant(V.shape, init=V)

    def test_default_axis_is_zero_and_kept(self) -> None:
        y = eg.sum(self.x)
        self.assertEqual(y.shape, (1, 3))
        np.testing.assert_allclose(_eval(self.g, y), [[5.0, 7.0, 9.0]])

    def test_values(self) -> None:
        g, x = self.g, self.x
        np.testing.assert_allclose(_eval(g, eg.sum(x, axis=1)), [[6.0], [15.0]])
        np.testing.assert_allclose(_eval(g, eg.mean(x, axis=-1)), [[2.0], [5.0]])
        np.testing.assert_allclose(_eval(g, eg.max(x, axis=1)), [[3.0], [6.0]])
        np.testing.assert_allclose(_eval(g, eg.min(x, axis=0)), [[1.0, 2.0, 3.0]])
        np.testing.assert_allclose(_eval(g, eg.prod(x, axis=1)), [[6.0], [120.0]])
        lse = np.log(np.exp(V).sum(axis=1, keepdims=True))
        np.testing.assert_allclose(_eval(g, eg.logsumexp(x, axis=1)), lse)
        np.testing.assert_allclose(_eval(g, eg.var(x, axis=1)), V.var(axis=1, keepdims=True))
        np.testing.assert_allclose(_eval(g, eg.std(x, axis=1)), V.std(axis=1, keepdims=True))

    def test_logsumexp_is_stable(self) -> None:
        x = self.g.constant((1, 2), init=[1000.0, 1000.0])
        np.testing.assert_allclose(_eval(self.g, eg.logsumexp(x, axis=1)), [[1000.0 + np.log(2.0)]])

    def test_axis_out_of_range(self) -> None:
        with self.assertRaises(eg.AxisError):
            eg.sum(self.x, axis=2)

    def test_integer_sum(self) -> None:
        g = eg.ExpressionGraph()
        i = g.constant((3,), init=[1, 2, 3], value_type="int32")
        y = eg.sum(i)
        self.assertIs(y.value_type, eg.ElementType.INT32)
        np.testing.assert_array_equal(_eval(g, y), [6])
        with self.assertRaises(eg.TypePromotionError):
            eg.mean(i)


class TestReductionGradients(unittest.TestCase):
    def test_mean(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [1.0, 2.0, 3.0, 4.0])
        y = eg.mean(x)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [0.25] * 4)

    def test_max_routes_to_the_extreme(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [[1.0, 7.0], [5.0, 2.0]])
        y = eg.sum(eg.max(x, axis=1), axis=0)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [[0, 1], [1, 0]])

    def test_ties_share_the_gradient(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [[1.0, 3.0, 3.0], [2.0, 2.0, 2.0]])
        y = eg.sum(eg.max(x, axis=1), axis=0)
        z = eg.sum(eg.min(x, axis=1), axis=0)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [[0, 0.5, 0.5], [1 / 3, 1 / 3, 1 / 3]], rtol=1e-6)
        g.zero_grad()
        g.forward(z)
        g.backward(z)
        np.testing.assert_allclose(g.gradient(x), [[1, 0, 0], [1 / 3, 1 / 3, 1 / 3]], rtol=1e-6)

    def test_prod_with_zero(self) -> None:
        g = eg.ExpressionGraph()
        x = _param(g, "x", [2.0, 0.0, 3.0])
        y = eg.prod(x)
        g.forward(y)
        self.assertEqual(y.item(), 0.0)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), [0.0, 6.0, 0.0])

    def test_logsumexp_gradient_is_softmax(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        v = np.array([0.5, 1.0, -1.0])
        x = _param(g, "x", v)
        y = eg.logsumexp(x)
        g.forward(y)
        g.backward(y)
        np.testing.assert_allclose(g.gradient(x), np.exp(v) / np.exp(v).sum())


if __name__ == "__main__":
    unittest.main()
