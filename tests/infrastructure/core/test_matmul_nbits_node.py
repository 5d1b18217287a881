import unittest

import numpy as np

from quantgraph.domain import (
    BackwardMode,
    QuantizationConfigError,
    ShapeMismatchError,
    UnsupportedBitWidthError,
    ValidationError,
)
from quantgraph.infrastructure import MatMulNBits
from quantgraph.infrastructure.compute import NumpyEngine


# rows [2, 1, 4, 3] and [6, 5, 8, 7] after unpacking (low nibble first)
PACKED = np.array([[0x12, 0x34], [0x56, 0x78]], dtype=np.uint8)


class TestMatMulNBitsConstruction(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float32")

    def test_dimensions(self):
        node = MatMulNBits("q", self.engine, PACKED, [1.0, 1.0])
        self.assertEqual((node.rows, node.cols), (2, 4))
        self.assertEqual(node.output_shape(), (1, 4))
        self.assertEqual(node.parameters(), [])

    def test_only_four_bits_supported(self):
        with self.assertRaises(UnsupportedBitWidthError) as ctx:
            MatMulNBits("q", self.engine, PACKED, [1.0], nbits=8)
        self.assertEqual(ctx.exception.nbits, 8)

    def test_missing_tensors(self):
        with self.assertRaises(ValidationError):
            MatMulNBits("q", self.engine, None, [1.0])
        with self.assertRaises(ValidationError):
            MatMulNBits("q", self.engine, PACKED, None)

    def test_weights_must_be_2d(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            MatMulNBits("q", self.engine, PACKED.reshape(-1), [1.0])
        self.assertIn("2D", str(ctx.exception))

    def test_scale_shape_checks(self):
        with self.assertRaises(ShapeMismatchError):
            MatMulNBits("q", self.engine, PACKED, [[1.0, 1.0]])
        with self.assertRaises(ShapeMismatchError) as ctx:
            MatMulNBits("q", self.engine, PACKED, [1.0, 1.0, 1.0])
        self.assertIn("incompatible with weight matrix rows 2", str(ctx.exception))

    def test_zero_point_must_match_scale(self):
        with self.assertRaises(ShapeMismatchError) as ctx:
            MatMulNBits("q", self.engine, PACKED, [1.0, 1.0], [0])
        self.assertIn("must match scale shape", str(ctx.exception))

    def test_zero_point_must_be_a_byte(self):
        for zp in (300, -1, 1.5):
            with self.subTest(zero_point=zp):
                with self.assertRaises(QuantizationConfigError) as ctx:
                    MatMulNBits("q", self.engine, [[0x12]], [1.0], [zp])
                self.assertIn("[0, 255]", str(ctx.exception))

    def test_packed_weights_must_be_bytes(self):
        for value in (-1, 256):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    MatMulNBits("q", self.engine, [[value]], [1.0], symmetric=True)

    def test_setters_reject_out_of_range_codes(self):
        node = MatMulNBits("q", self.engine, PACKED, [1.0, 1.0], [0, 0])
        with self.assertRaises(QuantizationConfigError):
            node.set_zero_point([300, 0])
        with self.assertRaises(ValidationError):
            node.set_quantized_weights([[-1, 0], [0, 0]])
        np.testing.assert_array_equal(node.zero_point.to_numpy(), [0, 0])
        np.testing.assert_array_equal(node.quantized_weights.to_numpy(), PACKED)

    def test_symmetric_ignores_zero_point_shape(self):
        node = MatMulNBits("q", self.engine, PACKED, [1.0], [1, 2, 3], symmetric=True)
        self.assertTrue(node.quantization_info()["has_zero_point"])

    def test_repr(self):
        node = MatMulNBits("q", self.engine, PACKED, [1.0], symmetric=True)
        self.assertEqual(repr(node), "MatMulNBits(2x4, 4-bit, symmetric=True)")

    def test_quantization_info(self):
        node = MatMulNBits("q", self.engine, PACKED, [1.0, 2.0], [1, 2])
        info = node.quantization_info()
        self.assertEqual(info["nbits"], 4)
        self.assertFalse(info["symmetric"])
        self.assertTrue(info["has_scale"])
        self.assertEqual(info["scale_shape"], (2,))
        self.assertEqual(info["quantized_shape"], (2, 2))
        self.assertEqual(info["actual_weight_shape"], (2, 4))
        self.assertEqual(info["zero_point_shape"], (2,))

    def test_info_without_zero_point(self):
        info = MatMulNBits("q", self.engine, PACKED, [1.0]).quantization_info()
        self.assertFalse(info["has_zero_point"])
        self.assertNotIn("zero_point_shape", info)


class TestMatMulNBitsDequantizationCache(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float32")
        self.node = MatMulNBits("q", self.engine, PACKED, [1.0, 0.5], [1, 2])

    def test_dequantized_values(self):
        w = self.node.get_dequantized_weights().to_numpy()
        np.testing.assert_allclose(w, [[1, 0, 3, 2], [2, 1.5, 3, 2.5]])

    def test_same_instance_until_invalidated(self):
        first = self.node.get_dequantized_weights()
        self.assertIs(first, self.node.get_dequantized_weights())
        self.node.invalidate_cache()
        second = self.node.get_dequantized_weights()
        self.assertIsNot(first, second)
        np.testing.assert_array_equal(first.to_numpy(), second.to_numpy())

    def test_setters_invalidate(self):
        before = self.node.get_dequantized_weights()
        self.node.set_scale([2.0, 1.0])
        after_scale = self.node.get_dequantized_weights()
        self.assertIsNot(before, after_scale)
        np.testing.assert_allclose(after_scale.to_numpy()[0], [2, 0, 6, 4])

        self.node.set_zero_point(None)
        after_zp = self.node.get_dequantized_weights()
        self.assertIsNot(after_scale, after_zp)
        np.testing.assert_allclose(after_zp.to_numpy()[0], [4, 2, 8, 6])

        self.node.set_quantized_weights(np.zeros((2, 2), dtype=np.uint8))
        np.testing.assert_array_equal(
            self.node.get_dequantized_weights().to_numpy(), np.zeros((2, 4))
        )

    def test_rejected_setter_keeps_cache(self):
        before = self.node.get_dequantized_weights()
        with self.assertRaises(ShapeMismatchError):
            self.node.set_scale([1.0, 1.0, 1.0])
        self.assertIs(before, self.node.get_dequantized_weights())

    def test_symmetric_uses_zero_point_128(self):
        node = MatMulNBits("s", self.engine, PACKED, [0.1], symmetric=True)
        w = node.get_dequantized_weights().to_numpy()
        np.testing.assert_allclose(w[0, :2], [-12.6, -12.7], rtol=1e-5)


class TestMatMulNBitsForwardBackward(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float32")
        self.node = MatMulNBits("q", self.engine, PACKED, [1.0])
        self.w = self.node.get_dequantized_weights().to_numpy()

    def test_forward(self):
        x = np.array([[1.0, 2.0], [0.5, -1.0], [0.0, 1.0]], dtype=np.float32)
        y = self.node.forward(self.engine.from_numpy(x))
        self.assertEqual(y.shape, (3, 4))
        np.testing.assert_allclose(y.to_numpy(), x @ self.w)

    def test_forward_shape_errors(self):
        with self.assertRaises(ShapeMismatchError):
            self.node.forward(self.engine.from_numpy(np.ones(2)))
        with self.assertRaises(ShapeMismatchError):
            self.node.forward(self.engine.from_numpy(np.ones((3, 4))))

    def test_backward_returns_input_gradient_only(self):
        x = self.engine.from_numpy(np.ones((3, 2)))
        dy = np.arange(12, dtype=np.float32).reshape(3, 4)
        self.node.forward(x)
        grads = self.node.backward(BackwardMode.FULL_BACKPROP, self.engine.from_numpy(dy))
        self.assertEqual(len(grads), 1)
        np.testing.assert_allclose(grads[0].to_numpy(), dy @ self.w.T)


if __name__ == "__main__":
    unittest.main()
