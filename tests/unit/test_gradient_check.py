#!/usr/bin/env python3
"""
CRITICAL: Gradient Checks for BNLayer

Exhaustively compares the analytic input, scale and shift gradients with
central finite differences, and makes sure the checker itself rejects a
gradient that treats the batch statistics as constants.
"""

import unittest
import sys
from pathlib import Path

import numpy as np

# Add project root to path
REPO_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(REPO_ROOT))

from bnorm.blob import Blob
from bnorm.config import bn_layer_param
from bnorm.fillers import gaussian_filler
from bnorm.gradient_check import GradientChecker, GradientCheckError
from bnorm.layers import BNLayer


def make_bottom(dtype=np.float64, shape=(5, 2, 3, 4), seed=1701):
    bottom = Blob(*shape, dtype=dtype)
    gaussian_filler(0.0, 1.0, rng=np.random.default_rng(seed))(bottom)
    return bottom


class FrozenStatsBNLayer(BNLayer):
    """Backward that ignores how the mean and variance depend on the input"""

    def backward(self, top, propagate_down, bottom):
        super().backward(top, propagate_down, bottom)
        cache = self.cache
        dy = top[0].diff
        bottom[0].diff[...] = dy * (cache.scale * cache.rstd).reshape(1, -1, 1, 1)


class TestBNGradient(unittest.TestCase):

    def check(self, scale, shift, threshold, dtype=np.float64):
        layer = BNLayer(bn_layer_param(scale=scale, shift=shift))
        checker = GradientChecker(1e-2, threshold)
        bottom, top = make_bottom(dtype), Blob(dtype=dtype)
        checked = checker.check_gradient_exhaustive(layer, [bottom], [top])
        # every top element against 2 + 2 parameters and 120 inputs
        self.assertEqual(checked, top.count * (4 + bottom.count))

    def test_gradient_shift_zero(self):
        self.check(1, 0, 1e-4)

    def test_gradient_shift_one(self):
        self.check(1, 1, 1e-3)

    def test_gradient_scale_two_shift_one(self):
        self.check(2, 1, 1e-3)

    def test_gradient_float32(self):
        for scale, shift in ((1, 1), (2, 1)):
            with self.subTest(scale=scale, shift=shift):
                self.check(scale, shift, 1e-3, dtype=np.float32)

    def test_sum_of_squares_objective(self):
        layer = BNLayer(bn_layer_param(scale=2, shift=1))
        checker = GradientChecker(1e-2, 1e-3)
        bottom, top = make_bottom(), Blob()
        checked = checker.check_gradient(layer, [bottom], [top])
        self.assertEqual(checked, 4 + bottom.count)

    def test_frozen_statistics_gradient_is_rejected(self):
        layer = FrozenStatsBNLayer(bn_layer_param(scale=1, shift=0))
        checker = GradientChecker(1e-2, 1e-3)
        bottom, top = make_bottom(), Blob()
        layer.setup([bottom], [top])
        with self.assertRaises(GradientCheckError):
            checker.check_gradient_single(layer, [bottom], [top], top_id=0, top_data_id=0)


class TestGradientChecker(unittest.TestCase):

    def test_invalid_configuration(self):
        with self.assertRaises(ValueError):
            GradientChecker(0.0, 1e-3)
        with self.assertRaises(ValueError):
            GradientChecker(1e-2, -1.0)

    def test_check_bottom_out_of_range(self):
        layer = BNLayer(bn_layer_param())
        bottom, top = make_bottom(), Blob()
        layer.setup([bottom], [top])
        with self.assertRaises(ValueError):
            GradientChecker(1e-2, 1e-3).check_gradient_single(layer, [bottom], [top], check_bottom=1)

    def test_objective_single_element(self):
        checker = GradientChecker(1e-2, 1e-3)
        top = Blob(1, 1, 2, 2)
        top.data[...] = np.arange(4).reshape(1, 1, 2, 2)
        loss = checker.get_objective_and_gradient([top], top_id=0, top_data_id=3)
        self.assertEqual(loss, 3.0 * GradientChecker.LOSS_WEIGHT)
        self.assertEqual(top.diff_at(0, 0, 1, 1), GradientChecker.LOSS_WEIGHT)
        self.assertEqual(float(top.diff.sum()), GradientChecker.LOSS_WEIGHT)

    def test_objective_sum_of_squares(self):
        checker = GradientChecker(1e-2, 1e-3)
        top = Blob(1, 1, 1, 3)
        top.data[...] = [1.0, 2.0, 3.0]
        loss = checker.get_objective_and_gradient([top])
        self.assertAlmostEqual(loss, 7.0)
        np.testing.assert_array_equal(top.diff, top.data)

    def test_parameters_restored(self):
        layer = BNLayer(bn_layer_param(scale=2, shift=1))
        bottom, top = make_bottom(), Blob()
        before = bottom.data.copy()
        GradientChecker(1e-2, 1e-3).check_gradient(layer, [bottom], [top])
        np.testing.assert_array_equal(bottom.data, before)
        np.testing.assert_array_equal(layer.scale.data, 2.0)
        np.testing.assert_array_equal(layer.shift.data, 1.0)


if __name__ == '__main__':
    unittest.main()
