import unittest
import warnings

import ml_dtypes
import numpy as np

from quantgraph.infrastructure.numeric import (
    FLOAT8_MAX,
    Float8Ops,
    Float16Ops,
    Float32Ops,
    Float64Ops,
    Int8Ops,
    Uint8Ops,
    arithmetic_for,
    available_arithmetics,
)


ALL_OPS = (Float64Ops, Float32Ops, Float16Ops, Float8Ops, Int8Ops, Uint8Ops)


class TestArithmeticLookup(unittest.TestCase):
    def test_available_names(self):
        self.assertEqual(
            set(available_arithmetics()),
            {"float64", "float32", "float16", "float8", "int8", "uint8"},
        )

    def test_lookup_by_name_and_dtype(self):
        self.assertIsInstance(arithmetic_for("float16"), Float16Ops)
        self.assertIsInstance(arithmetic_for(np.dtype(np.int8)), Int8Ops)
        self.assertIsInstance(
            arithmetic_for(np.dtype(ml_dtypes.float8_e4m3fn)), Float8Ops
        )

    def test_lookup_passes_instances_through(self):
        ops = Uint8Ops()
        self.assertIs(arithmetic_for(ops), ops)

    def test_unknown_name_raises(self):
        with self.assertRaises(ValueError):
            arithmetic_for("bfloat16")

    def test_equality_by_name(self):
        self.assertEqual(Float32Ops(), Float32Ops())
        self.assertNotEqual(Float32Ops(), Float64Ops())


class TestArithmeticContract(unittest.TestCase):
    """Properties every element type must satisfy."""

    def test_identities(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                self.assertEqual(float(ops.to_float64(ops.zero())), 0.0)
                self.assertEqual(float(ops.to_float64(ops.one())), 1.0)
                self.assertTrue(ops.is_zero(ops.zero()))
                self.assertFalse(ops.is_zero(ops.one()))

    def test_division_by_zero_returns_zero(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                out = ops.div(ops.from_float64(3.0), ops.zero())
                self.assertEqual(float(ops.to_float64(out)), 0.0)

    def test_division_by_zero_vectorized(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                a = ops.cast(np.array([4, 6, 8]))
                b = ops.cast(np.array([2, 0, 4]))
                out = np.asarray(ops.to_float64(ops.div(a, b)))
                np.testing.assert_array_equal(out, [2.0, 0.0, 2.0])

    def test_results_keep_storage_dtype(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                a = ops.cast(np.array([1, 2, 3]))
                self.assertEqual(np.asarray(ops.add(a, a)).dtype, ops.dtype)
                self.assertEqual(np.asarray(ops.mul(a, a)).dtype, ops.dtype)
                self.assertEqual(np.asarray(ops.tanh(a)).dtype, ops.dtype)

    def test_relu_and_grad(self):
        for cls in (Float64Ops, Float32Ops, Float16Ops, Float8Ops, Int8Ops):
            ops = cls()
            with self.subTest(ops=ops.name):
                x = ops.cast(np.array([-2, 0, 3]))
                np.testing.assert_array_equal(
                    np.asarray(ops.to_float64(ops.relu(x))), [0.0, 0.0, 3.0]
                )
                np.testing.assert_array_equal(
                    np.asarray(ops.to_float64(ops.relu_grad(x))), [0.0, 0.0, 1.0]
                )

    def test_sum_with_axis(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                x = ops.cast(np.array([[1, 2], [3, 4]]))
                np.testing.assert_array_equal(
                    np.asarray(ops.to_float64(ops.sum(x, axis=0))), [4.0, 6.0]
                )
                kept = np.asarray(ops.sum(x, axis=1, keepdims=True))
                self.assertEqual(kept.shape, (2, 1))

    def test_greater_than(self):
        for cls in ALL_OPS:
            ops = cls()
            with self.subTest(ops=ops.name):
                self.assertTrue(ops.greater_than(ops.from_float64(2.0), ops.one()))
                self.assertFalse(ops.greater_than(ops.one(), ops.from_float64(2.0)))


class TestFloatArithmetic(unittest.TestCase):
    def test_float16_rounds_per_operation(self):
        ops = Float16Ops()
        out = ops.add(np.float16(2048), np.float16(1))
        # 2049 is not representable in half precision
        self.assertEqual(float(out), 2048.0)

    def test_sigmoid_is_stable_for_extremes(self):
        for cls in (Float64Ops, Float32Ops, Float16Ops):
            ops = cls()
            with self.subTest(ops=ops.name):
                with warnings.catch_warnings():
                    warnings.simplefilter("error")
                    out = np.asarray(ops.sigmoid(ops.cast(np.array([-1e4, 0, 1e4]))))
                np.testing.assert_allclose(out.astype(np.float64), [0.0, 0.5, 1.0])

    def test_activation_gradients_match_finite_differences(self):
        ops = Float64Ops()
        x = np.linspace(-3.0, 3.0, 13) + 0.05
        h = 1e-6
        for fn, grad in (
            (ops.tanh, ops.tanh_grad),
            (ops.sigmoid, ops.sigmoid_grad),
            (lambda v: ops.leaky_relu(v, 0.1), lambda v: ops.leaky_relu_grad(v, 0.1)),
        ):
            numeric = (np.asarray(fn(x + h)) - np.asarray(fn(x - h))) / (2 * h)
            np.testing.assert_allclose(np.asarray(grad(x)), numeric, atol=1e-6)

    def test_tanh_grad_uses_element_type(self):
        ops = Float16Ops()
        t = np.float16(np.tanh(np.float16(0.5)))
        expected = np.float16(np.float16(1) - np.float16(t * t))
        self.assertEqual(ops.tanh_grad(np.float16(0.5)), expected)

    def test_log_and_sqrt_of_invalid_inputs_do_not_raise(self):
        ops = Float32Ops()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            self.assertTrue(np.isnan(ops.sqrt(np.float32(-1))))
            self.assertTrue(np.isinf(ops.log(np.float32(0))))


class TestFloat8Arithmetic(unittest.TestCase):
    def test_storage_dtype(self):
        self.assertEqual(Float8Ops().dtype, np.dtype(ml_dtypes.float8_e4m3fn))

    def test_rounds_to_e4m3(self):
        ops = Float8Ops()
        # e4m3 has 3 mantissa bits: 1.0625 rounds to 1.0
        self.assertEqual(float(ops.to_float64(ops.from_float64(1.0625))), 1.0)

    def test_conversion_saturates_with_warning(self):
        ops = Float8Ops()
        with self.assertWarns(RuntimeWarning):
            out = ops.cast(np.array([1000.0, -1000.0]))
        np.testing.assert_array_equal(
            out.astype(np.float64), [FLOAT8_MAX, -FLOAT8_MAX]
        )

    def test_addition_saturates(self):
        ops = Float8Ops()
        big = ops.from_float64(400.0)
        with self.assertWarns(RuntimeWarning):
            out = ops.add(big, big)
        self.assertEqual(float(ops.to_float64(out)), FLOAT8_MAX)


class TestIntegerArithmetic(unittest.TestCase):
    def test_int8_wraps(self):
        ops = Int8Ops()
        self.assertEqual(int(ops.add(np.int8(127), np.int8(1))), -128)
        self.assertEqual(int(ops.mul(np.int8(16), np.int8(16))), 0)

    def test_uint8_wraps(self):
        ops = Uint8Ops()
        self.assertEqual(int(ops.add(np.uint8(255), np.uint8(1))), 0)
        self.assertEqual(int(ops.sub(np.uint8(0), np.uint8(1))), 255)

    def test_division_truncates_toward_zero(self):
        ops = Int8Ops()
        self.assertEqual(int(ops.div(np.int8(-7), np.int8(2))), -3)
        self.assertEqual(int(ops.div(np.int8(7), np.int8(-2))), -3)

    def test_float_conversion_truncates_and_saturates(self):
        ops = Int8Ops()
        np.testing.assert_array_equal(
            ops.from_float64(np.array([2.9, -2.9, 1000.0, -1000.0, np.nan])),
            np.array([2, -2, 127, -128, 0], dtype=np.int8),
        )

    def test_activation_gradients_are_truncated(self):
        ops = Int8Ops()
        self.assertEqual(int(ops.tanh_grad(np.int8(0))), 1)
        self.assertEqual(int(ops.sigmoid_grad(np.int8(0))), 0)


if __name__ == "__main__":
    unittest.main()
