import unittest

import numpy as np

from quantgraph.domain import CancellationToken, OperationCancelledError, ShapeMismatchError
from quantgraph.infrastructure.compute import NumpyEngine
from quantgraph.infrastructure.tensor import Tensor


class TestNumpyEngine(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float32")
        self.rng = np.random.default_rng(0)

    def t(self, arr):
        return self.engine.from_numpy(np.asarray(arr, dtype=np.float32))

    def test_from_data_flat(self):
        t = self.engine.from_data((2, 3), [1, 2, 3, 4, 5, 6])
        self.assertEqual(t.shape, (2, 3))
        np.testing.assert_array_equal(t.data(), np.arange(1, 7, dtype=np.float32))

    def test_from_data_wrong_length(self):
        with self.assertRaises(ShapeMismatchError):
            self.engine.from_data((2, 3), [1, 2, 3])

    def test_elementwise_broadcast(self):
        a = self.t([[1, 2], [3, 4]])
        b = self.t([10, 20])
        np.testing.assert_array_equal(
            self.engine.add(a, b).to_numpy(), [[11, 22], [13, 24]]
        )
        np.testing.assert_array_equal(
            self.engine.sub(a, b).to_numpy(), [[-9, -18], [-7, -16]]
        )
        np.testing.assert_array_equal(
            self.engine.mul(a, b).to_numpy(), [[10, 40], [30, 80]]
        )

    def test_elementwise_incompatible_shapes(self):
        with self.assertRaises(ShapeMismatchError):
            self.engine.add(self.t(np.ones((2, 3))), self.t(np.ones((2, 2))))

    def test_matmul(self):
        a = self.rng.standard_normal((3, 4)).astype(np.float32)
        b = self.rng.standard_normal((4, 5)).astype(np.float32)
        out = self.engine.matmul(self.t(a), self.t(b)).to_numpy()
        np.testing.assert_allclose(out, a @ b, rtol=1e-5, atol=1e-6)

    def test_matmul_inner_mismatch(self):
        with self.assertRaises(ShapeMismatchError):
            self.engine.matmul(self.t(np.ones((2, 3))), self.t(np.ones((2, 3))))

    def test_matmul_requires_2d(self):
        with self.assertRaises(ShapeMismatchError):
            self.engine.matmul(self.t(np.ones(3)), self.t(np.ones((3, 2))))

    def test_transpose_and_reshape(self):
        x = self.t(np.arange(6).reshape(2, 3))
        self.assertEqual(self.engine.transpose(x).shape, (3, 2))
        self.assertEqual(self.engine.transpose(x, (1, 0)).shape, (3, 2))
        self.assertEqual(self.engine.reshape(x, (3, 2)).shape, (3, 2))
        with self.assertRaises(ShapeMismatchError):
            self.engine.reshape(x, (4, 2))
        with self.assertRaises(ShapeMismatchError):
            self.engine.transpose(x, (0, 0))

    def test_concat_and_split(self):
        a = self.t(np.ones((2, 2)))
        b = self.t(np.zeros((2, 3)))
        c = self.engine.concat([a, b], 1)
        self.assertEqual(c.shape, (2, 5))
        with self.assertRaises(ShapeMismatchError):
            self.engine.split(c, 2, 1)
        left, right = self.engine.split(self.t(np.arange(8).reshape(2, 4)), 2, -1)
        np.testing.assert_array_equal(left.to_numpy(), [[0, 1], [4, 5]])
        np.testing.assert_array_equal(right.to_numpy(), [[2, 3], [6, 7]])

    def test_sum(self):
        x = self.t([[1, 2, 3], [4, 5, 6]])
        np.testing.assert_array_equal(self.engine.sum(x, axis=0).to_numpy(), [5, 7, 9])
        kept = self.engine.sum(x, axis=1, keepdims=True)
        self.assertEqual(kept.shape, (2, 1))
        with self.assertRaises(ShapeMismatchError):
            self.engine.sum(x, axis=2)

    def test_unary_op_and_tanh_prime(self):
        x = self.t([[-1.0, 0.0, 2.0]])
        up = self.t([[2.0, 2.0, 2.0]])
        out = self.engine.tanh_prime(x, up).to_numpy()
        expected = 2.0 * (1.0 - np.tanh(np.array([[-1.0, 0.0, 2.0]])) ** 2)
        np.testing.assert_allclose(out, expected, rtol=1e-5)
        sq = self.engine.unary_op(x, lambda v: v * v).to_numpy()
        np.testing.assert_array_equal(sq, [[1.0, 0.0, 4.0]])

    def test_results_are_tensors_in_element_type(self):
        engine = NumpyEngine("float16")
        out = engine.add(engine.from_numpy(np.ones(2)), engine.from_numpy(np.ones(2)))
        self.assertIsInstance(out, Tensor)
        self.assertEqual(out.dtype, np.float16)

    def test_cancelled_token_stops_every_call(self):
        token = CancellationToken()
        token.cancel()
        x = self.t(np.ones((2, 2)))
        with self.assertRaises(OperationCancelledError):
            self.engine.add(x, x, token=token)
        with self.assertRaises(OperationCancelledError):
            self.engine.matmul(x, x, token=token)


class TestIntegerEngine(unittest.TestCase):
    def test_int8_matmul_wraps(self):
        engine = NumpyEngine("int8")
        a = engine.from_numpy(np.full((1, 2), 100))
        b = engine.from_numpy(np.ones((2, 1)))
        # 200 wraps to -56 in two's complement
        self.assertEqual(int(engine.matmul(a, b).to_numpy()[0, 0]), -56)


class TestTensor(unittest.TestCase):
    def test_zero_filled_by_default(self):
        t = Tensor((2, 2))
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 2)))
        self.assertEqual(t.size, 4)
        self.assertEqual(t.ndim, 2)

    def test_to_numpy_returns_copy(self):
        t = Tensor((2,), [1, 2])
        arr = t.to_numpy()
        arr[0] = 9
        self.assertEqual(t.to_numpy()[0], 1)

    def test_copy_from_numpy_checks_shape(self):
        t = Tensor((2, 2))
        t.copy_from_numpy(np.ones((2, 2)))
        np.testing.assert_array_equal(t.data(), np.ones(4))
        with self.assertRaises(ShapeMismatchError):
            t.copy_from_numpy(np.ones((3,)))


if __name__ == "__main__":
    unittest.main()
