import unittest

import numpy as np

import exprgraph as eg


def _network(g):
    rng = np.random.default_rng(0)
    x = g.constant((4, 3), init=rng.normal(size=(4, 3)))
    w1 = g.param("w1", (3, 5), init=rng.normal(size=(3, 5)))
    w2 = g.param("w2", (3, 5), init=rng.normal(size=(3, 5)))
    b = g.param("b", (5,), init=rng.normal(size=5))
    left = eg.tanh(eg.affine(x, w1, b))
    right = eg.sigmoid(eg.dot(x, w2))
    mid = eg.checkpoint(left * right)
    loss = eg.sum(eg.sum(eg.square(mid) + eg.exp(left), axis=1), axis=0)
    return (w1, w2, b), loss


class TestParallelTraversal(unittest.TestCase):
    def test_parallel_matches_sequential(self) -> None:
        seq = eg.ExpressionGraph(workers=1)
        seq_params, seq_loss = _network(seq)
        par = eg.ExpressionGraph(workers=4)
        par_params, par_loss = _network(par)

        for g, loss in ((seq, seq_loss), (par, par_loss)):
            g.forward(loss)
            g.backward(loss)

        np.testing.assert_allclose(par.value(par_loss), seq.value(seq_loss), rtol=1e-6)
        for p, s in zip(par_params, seq_params):
            np.testing.assert_allclose(par.gradient(p), seq.gradient(s), rtol=1e-5, atol=1e-6)

    def test_parallel_repeated_passes(self) -> None:
        g = eg.ExpressionGraph(workers=3)
        params, loss = _network(g)
        g.forward(loss)
        g.backward(loss)
        first = [g.gradient(p) for p in params]
        g.zero_grad()
        g.new_generation()
        g.forward(loss)
        g.backward(loss)
        for p, expected in zip(params, first):
            np.testing.assert_allclose(g.gradient(p), expected, rtol=1e-6)


if __name__ == "__main__":
    unittest.main()
