import unittest

import numpy as np

from quantgraph.domain import BackwardMode, ShapeMismatchError, ValidationError
from quantgraph.infrastructure import Bias, Dense, Linear, Parameter, Tensor
from quantgraph.infrastructure.activations import LeakyReLU, Tanh
from quantgraph.infrastructure.compute import NumpyEngine


FULL = BackwardMode.FULL_BACKPROP


class TestLinearNode(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float64")
        self.rng = np.random.default_rng(3)
        self.layer = Linear("fc", self.engine, 3, 2, rng=self.rng)
        self.w = self.rng.standard_normal((3, 2))
        self.layer.weights.value.copy_from_numpy(self.w)

    def test_forward_matches_numpy(self):
        x = self.rng.standard_normal((4, 3))
        y = self.layer.forward(self.engine.from_numpy(x))
        np.testing.assert_allclose(y.to_numpy(), x @ self.w)

    def test_backward_gradients(self):
        x = self.rng.standard_normal((4, 3))
        dy = self.rng.standard_normal((4, 2))
        self.layer.forward(self.engine.from_numpy(x))
        (dx,) = self.layer.backward(FULL, self.engine.from_numpy(dy))
        np.testing.assert_allclose(dx.to_numpy(), dy @ self.w.T)
        np.testing.assert_allclose(self.layer.weights.gradient.to_numpy(), x.T @ dy)

    def test_weight_gradient_is_overwritten(self):
        x = self.engine.from_numpy(np.ones((1, 3)))
        dy = self.engine.from_numpy(np.ones((1, 2)))
        self.layer.forward(x)
        self.layer.backward(FULL, dy)
        self.layer.backward(FULL, dy)
        np.testing.assert_allclose(self.layer.weights.gradient.to_numpy(), np.ones((3, 2)))

    def test_leading_axes_flattened_for_weight_gradient(self):
        x = self.rng.standard_normal((2, 5, 3))
        dy = self.rng.standard_normal((2, 5, 2))
        self.layer.forward(self.engine.from_numpy(x))
        self.layer.backward(FULL, self.engine.from_numpy(dy))
        expected = x.reshape(-1, 3).T @ dy.reshape(-1, 2)
        np.testing.assert_allclose(self.layer.weights.gradient.to_numpy(), expected)

    def test_wrong_feature_size(self):
        with self.assertRaises(ShapeMismatchError):
            self.layer.forward(self.engine.from_numpy(np.ones((4, 5))))

    def test_one_dimensional_input_rejected(self):
        with self.assertRaises(ShapeMismatchError):
            self.layer.forward(self.engine.from_numpy(np.ones(3)))

    def test_non_positive_features_rejected(self):
        with self.assertRaises(ValidationError):
            Linear("fc", self.engine, 0, 2)

    def test_from_parameters(self):
        p = Parameter("shared", Tensor.from_numpy(self.w))
        layer = Linear.from_parameters("fc2", self.engine, p)
        self.assertIs(layer.weights, p)
        self.assertEqual((layer.in_features, layer.out_features), (3, 2))
        with self.assertRaises(ShapeMismatchError):
            Linear.from_parameters("bad", self.engine, Parameter("v", Tensor((3,))))


class TestBiasNode(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float64")
        self.bias = Bias("b", self.engine, 3)
        self.bias.biases.value.copy_from_numpy(np.array([1.0, 2.0, 3.0]))

    def test_zero_initialized_by_default(self):
        fresh = Bias("b0", self.engine, 4)
        np.testing.assert_array_equal(fresh.biases.value.to_numpy(), np.zeros(4))
        self.assertEqual(fresh.biases.name, "b0_biases")

    def test_forward_broadcasts(self):
        y = self.bias.forward(self.engine.from_numpy(np.zeros((2, 3))))
        np.testing.assert_array_equal(y.to_numpy(), [[1, 2, 3], [1, 2, 3]])

    def test_backward_sums_batch(self):
        self.bias.forward(self.engine.from_numpy(np.zeros((2, 3))))
        dy = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        (dx,) = self.bias.backward(FULL, self.engine.from_numpy(dy))
        np.testing.assert_array_equal(dx.to_numpy(), dy)
        np.testing.assert_array_equal(self.bias.biases.gradient.to_numpy(), [5, 7, 9])

    def test_last_dim_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            self.bias.forward(self.engine.from_numpy(np.zeros((2, 4))))


class TestDenseNode(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float64")
        self.rng = np.random.default_rng(11)

    def _set(self, layer, w, b=None):
        layer.linear.weights.value.copy_from_numpy(w)
        if b is not None:
            layer.bias.biases.value.copy_from_numpy(b)

    def test_children_and_parameter_paths(self):
        layer = Dense("d", self.engine, 3, 2, activation="Tanh")
        self.assertEqual(
            [name for name, _ in layer.named_parameters()],
            ["linear.weights", "bias.biases"],
        )
        self.assertEqual(layer.linear.name, "d_linear")
        self.assertEqual(layer.bias.name, "d_bias")
        self.assertIsInstance(layer.activation, Tanh)
        self.assertEqual(layer.activation.name, "d_tanh")

    def test_without_bias(self):
        layer = Dense("d", self.engine, 3, 2, bias=False)
        self.assertIsNone(layer.bias)
        self.assertEqual(len(layer.parameters()), 1)

    def test_unknown_activation(self):
        with self.assertRaises(ValidationError):
            Dense("d", self.engine, 3, 2, activation="Softplus")

    def test_forward_and_backward_with_tanh(self):
        w = self.rng.standard_normal((3, 2))
        b = self.rng.standard_normal(2)
        x = self.rng.standard_normal((5, 3))
        dy = self.rng.standard_normal((5, 2))

        layer = Dense("d", self.engine, 3, 2, activation="Tanh")
        self._set(layer, w, b)
        y = layer.forward(self.engine.from_numpy(x))
        a = x @ w + b
        np.testing.assert_allclose(y.to_numpy(), np.tanh(a))

        (dx,) = layer.backward(FULL, self.engine.from_numpy(dy))
        da = dy * (1.0 - np.tanh(a) ** 2)
        np.testing.assert_allclose(dx.to_numpy(), da @ w.T)
        np.testing.assert_allclose(layer.linear.weights.gradient.to_numpy(), x.T @ da)
        np.testing.assert_allclose(layer.bias.biases.gradient.to_numpy(), da.sum(axis=0))

    def test_activation_instance_accepted(self):
        act = LeakyReLU(self.engine, alpha=0.2, name="leaky")
        layer = Dense("d", self.engine, 2, 2, bias=False, activation=act)
        layer.linear.weights.value.copy_from_numpy(np.eye(2))
        y = layer.forward(self.engine.from_numpy(np.array([[-1.0, 2.0]])))
        np.testing.assert_allclose(y.to_numpy(), [[-0.2, 2.0]])
        self.assertEqual(
            layer.attributes(),
            {
                "bias": False,
                "activation": "LeakyReLU",
                "activation_attributes": {"alpha": 0.2},
            },
        )

    def test_static_output_shape(self):
        layer = Dense("d", self.engine, 3, 7)
        self.assertEqual(layer.output_shape(), (1, 7))
        self.assertEqual((layer.in_features, layer.out_features), (3, 7))


if __name__ == "__main__":
    unittest.main()
