"""Tests for scale-factor validation and step planning."""

from fractions import Fraction

import numpy as np
import pytest

from errors import InvalidInput
from utils import plan_doublings, step_count, target_dimensions, validate_scale_factor


class TestValidateScaleFactor:
    @pytest.mark.parametrize("scale", [1, 2, 2.5, Fraction(3, 2), np.int64(2), np.float32(2.0)])
    def test_accepts(self, scale):
        assert validate_scale_factor(scale) == scale

    @pytest.mark.parametrize("scale", [0, -2, 0.5, float("nan"), float("inf"), "4", True])
    def test_rejects(self, scale):
        with pytest.raises(InvalidInput):
            validate_scale_factor(scale)


class TestTargetDimensions:
    def test_integer_scale(self):
        assert target_dimensions(1000, 800, 8) == (8000, 6400)

    def test_fractional_scale_rounds(self):
        assert target_dimensions(101, 33, 1.5) == (152, 50)

    def test_numpy_scale_gives_int_dimensions(self):
        w, h = target_dimensions(10, 10, np.int64(3))
        assert (w, h) == (30, 30)
        assert type(w) is int and type(h) is int


class TestPlanDoublings:
    def test_caps_final_step(self):
        assert plan_doublings(100, 80, 500, 400) == [(200, 160), (400, 320), (500, 400)]

    def test_step_count_matches_plan(self):
        assert step_count(100, 80, 500, 400) == len(plan_doublings(100, 80, 500, 400))
        assert step_count(1000, 800, 8000, 6400) == 3

    def test_small_ratio_is_one_step(self):
        assert step_count(500, 500, 1000, 1000) == 1
        assert step_count(500, 500, 750, 750) == 1
