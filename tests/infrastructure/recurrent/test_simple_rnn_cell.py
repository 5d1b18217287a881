import unittest
import warnings

import numpy as np

from quantgraph.domain import BackwardMode, InvalidInputCountError, ShapeMismatchError
from quantgraph.infrastructure import SimpleRNN
from quantgraph.infrastructure.compute import NumpyEngine


class TestSimpleRNNCell(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float64")
        self.rng = np.random.default_rng(21)
        self.rnn = SimpleRNN("rnn", self.engine, 3, 2, rng=self.rng)
        self.wx = self.rng.standard_normal((3, 2))
        self.wh = self.rng.standard_normal((2, 2))
        self.b = self.rng.standard_normal((1, 2))
        self.rnn.input_weights.weights.value.copy_from_numpy(self.wx)
        self.rnn.hidden_weights.weights.value.copy_from_numpy(self.wh)
        self.rnn.bias.value.copy_from_numpy(self.b)

    def t(self, arr):
        return self.engine.from_numpy(np.asarray(arr, dtype=np.float64))

    def test_parameters(self):
        self.assertEqual(
            [name for name, _ in self.rnn.named_parameters()],
            ["bias", "input_weights.weights", "hidden_weights.weights"],
        )
        self.assertEqual(self.rnn.bias.name, "rnn_bias")
        self.assertEqual(self.rnn.output_shape(), (1, 2))

    def test_first_step_starts_from_zero_state(self):
        x = self.rng.standard_normal((4, 3))
        h = self.rnn.forward(self.t(x))
        np.testing.assert_allclose(h.to_numpy(), np.tanh(x @ self.wx + self.b))
        self.assertIs(self.rnn.hidden_state, h)

    def test_stored_state_feeds_next_step(self):
        x1 = self.rng.standard_normal((4, 3))
        x2 = self.rng.standard_normal((4, 3))
        h1 = np.tanh(x1 @ self.wx + self.b)
        h2 = np.tanh(x2 @ self.wx + h1 @ self.wh + self.b)
        self.rnn.forward(self.t(x1))
        out = self.rnn.forward(self.t(x2))
        np.testing.assert_allclose(out.to_numpy(), h2)

    def test_reset_state(self):
        x = self.rng.standard_normal((1, 3))
        first = self.rnn.forward(self.t(x)).to_numpy()
        self.rnn.reset_state()
        self.assertIsNone(self.rnn.hidden_state)
        np.testing.assert_allclose(self.rnn.forward(self.t(x)).to_numpy(), first)

    def test_explicit_previous_state(self):
        x = self.rng.standard_normal((2, 3))
        h_prev = self.rng.standard_normal((2, 2))
        out = self.rnn.forward(self.t(x), self.t(h_prev))
        np.testing.assert_allclose(
            out.to_numpy(), np.tanh(x @ self.wx + h_prev @ self.wh + self.b)
        )

    def test_full_backprop_gradients(self):
        x = self.rng.standard_normal((2, 3))
        h_prev = self.rng.standard_normal((2, 2))
        dy = self.rng.standard_normal((2, 2))
        a = x @ self.wx + h_prev @ self.wh + self.b
        d_a = dy * (1.0 - np.tanh(a) ** 2)

        self.rnn.forward(self.t(x), self.t(h_prev))
        dx, dh = self.rnn.backward(BackwardMode.FULL_BACKPROP, self.t(dy))
        np.testing.assert_allclose(dx.to_numpy(), d_a @ self.wx.T)
        np.testing.assert_allclose(dh.to_numpy(), d_a @ self.wh.T)
        np.testing.assert_allclose(
            self.rnn.input_weights.weights.gradient.to_numpy(), x.T @ d_a
        )
        np.testing.assert_allclose(
            self.rnn.hidden_weights.weights.gradient.to_numpy(), h_prev.T @ d_a
        )
        np.testing.assert_allclose(
            self.rnn.bias.gradient.to_numpy(), d_a.sum(axis=0, keepdims=True)
        )
        self.assertIs(self.rnn.last_hidden_gradient, dh)

    def test_one_step_approximation_zeroes_hidden_gradient(self):
        x = self.rng.standard_normal((2, 3))
        h_prev = self.rng.standard_normal((2, 2))
        dy = self.rng.standard_normal((2, 2))
        self.rnn.forward(self.t(x), self.t(h_prev))
        full_dx, _ = self.rnn.backward(BackwardMode.FULL_BACKPROP, self.t(dy))
        dx, dh = self.rnn.backward(BackwardMode.ONE_STEP_APPROXIMATION, self.t(dy))
        np.testing.assert_array_equal(dh.to_numpy(), np.zeros((2, 2)))
        np.testing.assert_array_equal(
            self.rnn.last_hidden_gradient.to_numpy(), np.zeros((2, 2))
        )
        np.testing.assert_allclose(dx.to_numpy(), full_dx.to_numpy())

    def test_single_input_returns_single_gradient(self):
        self.rnn.forward(self.t(np.ones((3, 3))))
        grads = self.rnn.backward(BackwardMode.FULL_BACKPROP, self.t(np.ones((3, 2))))
        self.assertEqual(len(grads), 1)
        self.assertEqual(grads[0].shape, (3, 3))
        self.assertEqual(self.rnn.last_hidden_gradient.shape, (3, 2))

    def test_bias_gradient_accumulates_across_steps(self):
        x = self.t(self.rng.standard_normal((2, 3)))
        dy = self.t(self.rng.standard_normal((2, 2)))
        self.rnn.forward(x)
        self.rnn.backward(BackwardMode.FULL_BACKPROP, dy)
        once = self.rnn.bias.gradient.to_numpy()
        self.rnn.backward(BackwardMode.FULL_BACKPROP, dy)
        np.testing.assert_allclose(self.rnn.bias.gradient.to_numpy(), 2 * once)
        self.rnn.zero_grad()
        self.assertIsNone(self.rnn.bias.gradient)

    def test_batch_change_warns_and_resets(self):
        self.rnn.forward(self.t(np.ones((4, 3))))
        x = np.ones((2, 3))
        with self.assertWarns(RuntimeWarning):
            out = self.rnn.forward(self.t(x))
        np.testing.assert_allclose(out.to_numpy(), np.tanh(x @ self.wx + self.b))

    def test_first_step_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            self.rnn.forward(self.t(np.ones((4, 3))))
            self.rnn.forward(self.t(np.ones((4, 3))))

    def test_input_validation(self):
        with self.assertRaises(ShapeMismatchError):
            self.rnn.forward(self.t(np.ones((2, 4))))
        with self.assertRaises(ShapeMismatchError):
            self.rnn.forward(self.t(np.ones((2, 3))), self.t(np.ones((3, 2))))
        x = self.t(np.ones((2, 3)))
        with self.assertRaises(InvalidInputCountError):
            self.rnn.forward(x, x, x)

    def test_build_from_attributes(self):
        built = SimpleRNN.build(
            self.engine, self.engine.arithmetic, "cell", {}, {"input_dim": 5, "hidden_dim": 7}
        )
        self.assertEqual(built.attributes(), {"input_dim": 5, "hidden_dim": 7})
        self.assertEqual(built.hidden_weights.weights.shape, (7, 7))


if __name__ == "__main__":
    unittest.main()
