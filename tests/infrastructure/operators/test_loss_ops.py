import unittest

import numpy as np

import exprgraph as eg

LOGITS = np.array([[1.0, 2.0, 0.5], [0.1, -1.0, 3.0]])
LABELS = [1, 2]


def _softmax(v):
    e = np.exp(v - v.max(axis=-1, keepdims=True))
    return e / e.sum(axis=-1, keepdims=True)


def _eval(g, y):
    g.forward(y)
    return np.array(g.value(y))


class TestSoftmax(unittest.TestCase):
    def test_softmax_and_logsoftmax(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.constant(LOGITS.shape, init=LOGITS)
        np.testing.assert_allclose(_eval(g, eg.softmax(x)), _softmax(LOGITS))
        np.testing.assert_allclose(_eval(g, eg.logsoftmax(x)), np.log(_softmax(LOGITS)))
        np.testing.assert_allclose(_eval(g, eg.softmax(x, axis=0)), _softmax(LOGITS.T).T)

    def test_masked_softmax(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((1, 3), init=[1.0, 2.0, 3.0])
        mask = g.constant((1, 3), init=[1, 1, 0], value_type="int32")
        y = eg.softmax(x, mask=mask)
        self.assertIs(y.value_type, eg.ElementType.FLOAT32)
        expected = np.append(_softmax(np.array([1.0, 2.0])), 0.0)
        np.testing.assert_allclose(_eval(g, y)[0], expected, rtol=1e-6, atol=1e-7)

    def test_softmax_gradient(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.param("x", (3,), init=[0.2, -0.4, 1.0])
        w = g.constant((3,), init=[1.0, 0.0, 0.0])
        y = eg.sum(eg.softmax(x) * w)
        g.forward(y)
        g.backward(y)
        p = _softmax(np.array([0.2, -0.4, 1.0]))
        np.testing.assert_allclose(g.gradient(x), p[0] * (np.array([1.0, 0.0, 0.0]) - p))


class TestCrossEntropy(unittest.TestCase):
    def test_values(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.constant(LOGITS.shape, init=LOGITS)
        y = eg.cross_entropy(x, g.indices(LABELS))
        self.assertEqual(y.shape, (2, 1))
        expected = -np.log(_softmax(LOGITS)[[0, 1], LABELS])
        np.testing.assert_allclose(_eval(g, y)[:, 0], expected)

    def test_gradient_is_softmax_minus_onehot(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.param("x", LOGITS.shape, init=LOGITS)
        y = eg.sum(eg.cross_entropy(x, g.indices(LABELS)), axis=0)
        g.forward(y)
        g.backward(y)
        onehot = np.zeros_like(LOGITS)
        onehot[[0, 1], LABELS] = 1.0
        np.testing.assert_allclose(g.gradient(x), _softmax(LOGITS) - onehot)

    def test_label_smoothing(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.constant(LOGITS.shape, init=LOGITS)
        y = eg.cross_entropy(x, g.indices(LABELS), label_smoothing=0.1)
        logp = np.log(_softmax(LOGITS))
        ce = -logp[[0, 1], LABELS]
        expected = 0.9 * ce + 0.1 * -logp.mean(axis=-1)
        np.testing.assert_allclose(_eval(g, y)[:, 0], expected)

    def test_output_type(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(LOGITS.shape, init=LOGITS)
        y = eg.cross_entropy(x, g.indices(LABELS), output_type="float64")
        self.assertIs(y.value_type, eg.ElementType.FLOAT64)

    def test_validation(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant(LOGITS.shape, init=LOGITS)
        with self.assertRaises(eg.ShapeError):
            eg.cross_entropy(x, g.indices([1, 2, 0]))
        with self.assertRaises(eg.TypePromotionError):
            eg.cross_entropy(x, g.constant((2,), init=[1.0, 2.0]))

    def test_unlikelihood(self) -> None:
        g = eg.ExpressionGraph(default_type="float64")
        x = g.constant(LOGITS.shape, init=LOGITS)
        y = eg.unlikelihood(x, g.indices(LABELS))
        self.assertEqual(y.shape, (2, 1))
        expected = -np.log(1.0 - _softmax(LOGITS)[[0, 1], LABELS])
        np.testing.assert_allclose(_eval(g, y)[:, 0], expected)


class TestWeightedOps(unittest.TestCase):
    def test_scalar_product(self) -> None:
        g = eg.ExpressionGraph()
        a = g.constant((3,), init=[1.0, 2.0, 3.0])
        b = g.constant((3,), init=[4.0, 5.0, 6.0])
        np.testing.assert_allclose(_eval(g, eg.scalar_product(a, b)), [32.0])

    def test_weighted_average(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((3,), init=[1.0, 2.0, 4.0])
        w = g.constant((3,), init=[1.0, 1.0, 2.0])
        np.testing.assert_allclose(_eval(g, eg.weighted_average(x, w)), [11.0 / 4.0])


class TestDropout(unittest.TestCase):
    def test_zero_probability_returns_input(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((4,))
        self.assertIs(eg.dropout(x, 0.0), x)

    def test_mask_scales_kept_values(self) -> None:
        g = eg.ExpressionGraph(seed=5)
        x = g.constant((200,), init=1.0)
        y = eg.dropout(x, 0.25)
        out = _eval(g, y)
        self.assertTrue(set(np.unique(out)) <= {0.0, np.float32(1.0 / 0.75)})
        self.assertGreater(np.count_nonzero(out == 0), 0)

    def test_explicit_mask(self) -> None:
        g = eg.ExpressionGraph()
        x = g.constant((3,), init=[1.0, 2.0, 3.0])
        m = g.constant((3,), init=[0.0, 2.0, 2.0])
        np.testing.assert_allclose(_eval(g, eg.dropout(x, m)), [0.0, 4.0, 6.0])

    def test_shared_masks(self) -> None:
        g = eg.ExpressionGraph(seed=1)
        a = g.dropout_mask(0.5, (8,), shared=True)
        self.assertEqual(g.dropout_mask(0.5, (8,), shared=True), a)
        self.assertNotEqual(g.dropout_mask(0.5, (8,)), a)


if __name__ == "__main__":
    unittest.main()
