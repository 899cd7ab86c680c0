"""Tests for the pixel-count safety policy."""

import pytest

from errors import InvalidInput
from safety import SafetyPolicy


class TestSafetyPolicy:
    def test_threshold_is_inclusive(self):
        policy = SafetyPolicy(50_000_000)
        assert policy.is_directly_materializable(50_000_000)
        assert not policy.is_directly_materializable(50_000_001)

    def test_max_safe_dimension(self):
        assert SafetyPolicy(50_000_000).max_safe_dimension() == 7071
        assert SafetyPolicy(100).max_safe_dimension() == 10

    def test_intermediate_scale_capped(self):
        policy = SafetyPolicy(50_000_000)
        scale = policy.safe_intermediate_scale(8, 1000, 800)
        assert scale == pytest.approx(7.071)
        assert (1000 * scale) * (800 * scale) <= 50_000_000

    def test_intermediate_scale_keeps_small_requests(self):
        assert SafetyPolicy(50_000_000).safe_intermediate_scale(2, 500, 500) == 2

    @pytest.mark.parametrize("bad", [0, -1, 1.5])
    def test_rejects_bad_threshold(self, bad):
        with pytest.raises(InvalidInput):
            SafetyPolicy(bad)
