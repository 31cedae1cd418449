"""
Tests for checked integer arithmetic.
"""
import unittest

from cpamm.errors import ArithmeticOverflow, DivisionByZero
from cpamm.fixed_point import (
    U64_MAX,
    U128_MAX,
    checked_add,
    checked_div,
    checked_div_ceil,
    checked_mul,
    checked_sub,
    mul_div,
    mul_div_ceil,
    require_u64,
)


class TestCheckedOps(unittest.TestCase):
    def test_add_within_u64(self):
        self.assertEqual(checked_add(U64_MAX - 1, 1), U64_MAX)

    def test_add_overflow(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_add(U64_MAX, 1)

    def test_add_with_wider_limit(self):
        self.assertEqual(checked_add(U64_MAX, 1, limit=U128_MAX), U64_MAX + 1)

    def test_sub_underflow(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_sub(1, 2)

    def test_sub_to_zero(self):
        self.assertEqual(checked_sub(5, 5), 0)

    def test_mul_u64_squared_fits_u128(self):
        self.assertEqual(checked_mul(U64_MAX, U64_MAX), U64_MAX * U64_MAX)

    def test_mul_overflow_u128(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_mul(U128_MAX, 2)

    def test_div_by_zero(self):
        with self.assertRaises(DivisionByZero):
            checked_div(10, 0)
        with self.assertRaises(DivisionByZero):
            checked_div_ceil(10, 0)

    def test_div_rounding(self):
        self.assertEqual(checked_div(7, 2), 3)
        self.assertEqual(checked_div_ceil(7, 2), 4)
        self.assertEqual(checked_div_ceil(8, 2), 4)
        self.assertEqual(checked_div_ceil(0, 3), 0)


class TestMulDiv(unittest.TestCase):
    def test_floor(self):
        self.assertEqual(mul_div(10, 10, 3), 33)

    def test_ceil(self):
        self.assertEqual(mul_div_ceil(10, 10, 3), 34)

    def test_exact_division_same_both_ways(self):
        self.assertEqual(mul_div(500_000, 100_000_000, 1_000_000), 50_000_000)
        self.assertEqual(mul_div_ceil(500_000, 100_000_000, 1_000_000), 50_000_000)

    def test_wide_intermediate(self):
        """a*b exceeds u64 but the quotient fits."""
        self.assertEqual(mul_div(U64_MAX, U64_MAX, U64_MAX), U64_MAX)

    def test_result_overflow(self):
        with self.assertRaises(ArithmeticOverflow):
            mul_div(U64_MAX, 2, 1)

    def test_zero_denominator(self):
        with self.assertRaises(DivisionByZero):
            mul_div(1, 1, 0)


class TestRequireU64(unittest.TestCase):
    def test_accepts_bounds(self):
        self.assertEqual(require_u64(0), 0)
        self.assertEqual(require_u64(U64_MAX), U64_MAX)

    def test_rejects_out_of_range(self):
        with self.assertRaises(ArithmeticOverflow):
            require_u64(-1)
        with self.assertRaises(ArithmeticOverflow):
            require_u64(U64_MAX + 1)

    def test_rejects_non_int(self):
        with self.assertRaises(TypeError):
            require_u64(1.5)
        with self.assertRaises(TypeError):
            require_u64(True)


if __name__ == '__main__':
    unittest.main()
