# -*- coding: utf-8 -*-
"""Tests for geo_utils module."""

import numpy as np
import pytest

from navadjust.geo_utils import coordinate_scale
from navadjust.geo_utils import to_geographic
from navadjust.geo_utils import to_local


class TestCoordinateScale:
    """Tests for coordinate_scale function."""

    def test_equator(self):
        mtodeglon, mtodeglat = coordinate_scale(0.0)
        assert 1.0 / mtodeglon == pytest.approx(111319.5, rel=1e-4)
        assert 1.0 / mtodeglat == pytest.approx(110574.3, rel=1e-3)

    def test_mid_latitude(self):
        mtodeglon, mtodeglat = coordinate_scale(45.0)
        assert 1.0 / mtodeglon == pytest.approx(78847.0, rel=1e-3)
        assert 1.0 / mtodeglat == pytest.approx(111132.0, rel=1e-3)

    def test_symmetric_hemispheres(self):
        assert coordinate_scale(-30.0) == pytest.approx(coordinate_scale(30.0))

    def test_pole_is_clamped(self):
        """Test that the longitude scale stays finite at the pole."""
        mtodeglon, _ = coordinate_scale(90.0)
        assert np.isfinite(mtodeglon)
        assert coordinate_scale(90.0) == coordinate_scale(89.0)


class TestLocalProjection:
    """Tests for to_local and to_geographic."""

    SCALE = (1.0e-5, 1.0e-5)
    ORIGIN = (-70.0, 45.0)

    def test_to_local(self):
        x, y = to_local([-70.0, -69.999], [45.0, 45.002], self.ORIGIN, self.SCALE)
        assert x == pytest.approx([0.0, 100.0])
        assert y == pytest.approx([0.0, 200.0])

    def test_inverse(self):
        lon = np.array([-70.01, -69.98])
        lat = np.array([44.99, 45.03])
        x, y = to_local(lon, lat, self.ORIGIN, self.SCALE)
        back_lon, back_lat = to_geographic(x, y, self.ORIGIN, self.SCALE)
        assert back_lon == pytest.approx(lon)
        assert back_lat == pytest.approx(lat)
