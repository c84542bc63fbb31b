"""Tests for src/adventure_engine/utils.py: clamp and finite_or."""
from __future__ import annotations

import math

import pytest

from adventure_engine.utils import clamp, finite_or


class TestClamp:
    @pytest.mark.parametrize("value, expected", [(-1, 0), (0.5, 0.5), (3, 1)])
    def test_bounds(self, value, expected):
        assert clamp(value, 0, 1) == expected


class TestFiniteOr:
    def test_none_returns_fallback(self):
        assert finite_or(None, 7) == 7

    def test_number_passthrough(self):
        assert finite_or(3, 0) == 3.0

    def test_numeric_string(self):
        assert finite_or("2.5", 0) == 2.5

    def test_garbage_string(self):
        assert finite_or("lots", 1.5) == 1.5

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite(self, value):
        assert finite_or(value, 0) == 0

    def test_wrong_type(self):
        assert finite_or([1], 4) == 4
