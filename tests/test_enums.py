# -*- coding: utf-8 -*-
"""Tests for enums module."""

import pytest

from navadjust.enums import CrossingStatus
from navadjust.enums import FileStatus
from navadjust.enums import Severity
from navadjust.enums import TieStatus


class TestTieStatus:
    """Tests for TieStatus axis groups and transitions."""

    def test_values(self):
        """Test enum values."""
        assert TieStatus.XY.value == "xy"
        assert TieStatus.XYZ_FIXED.value == "xyz_fixed"

    def test_is_fixed(self):
        assert TieStatus.Z_FIXED.is_fixed
        assert not TieStatus.XYZ.is_fixed

    @pytest.mark.parametrize(
        ("status", "mask"),
        [
            (TieStatus.XY, (1.0, 1.0, 0.0)),
            (TieStatus.Z, (0.0, 0.0, 1.0)),
            (TieStatus.XYZ, (1.0, 1.0, 1.0)),
            (TieStatus.XY_FIXED, (1.0, 1.0, 0.0)),
            (TieStatus.Z_FIXED, (0.0, 0.0, 1.0)),
            (TieStatus.XYZ_FIXED, (1.0, 1.0, 1.0)),
        ],
    )
    def test_axis_mask(self, status, mask):
        assert status.axis_mask() == mask

    def test_toggle_xy(self):
        """Disabling the only enabled group leaves the status unchanged."""
        assert TieStatus.XYZ.toggle_xy() == TieStatus.Z
        assert TieStatus.Z.toggle_xy() == TieStatus.XYZ
        assert TieStatus.XY.toggle_xy() == TieStatus.XY
        assert TieStatus.XYZ_FIXED.toggle_xy() == TieStatus.Z_FIXED

    def test_toggle_z(self):
        assert TieStatus.XYZ.toggle_z() == TieStatus.XY
        assert TieStatus.XY.toggle_z() == TieStatus.XYZ
        assert TieStatus.Z.toggle_z() == TieStatus.Z
        assert TieStatus.XY_FIXED.toggle_z() == TieStatus.XYZ_FIXED

    def test_cycle(self):
        """Cycling goes XY -> Z -> XYZ -> XY within each class."""
        assert TieStatus.XY.cycle() == TieStatus.Z
        assert TieStatus.Z.cycle() == TieStatus.XYZ
        assert TieStatus.XYZ.cycle() == TieStatus.XY
        assert TieStatus.XY_FIXED.cycle() == TieStatus.Z_FIXED
        assert TieStatus.XYZ_FIXED.cycle() == TieStatus.XY_FIXED

    def test_fix_unfix(self):
        assert TieStatus.XY.fix() == TieStatus.XY_FIXED
        assert TieStatus.XY_FIXED.fix() == TieStatus.XY_FIXED
        assert TieStatus.XYZ_FIXED.unfix() == TieStatus.XYZ
        assert TieStatus.Z.unfix() == TieStatus.Z

    def test_from_axes_requires_an_axis(self):
        with pytest.raises(ValueError, match="at least one axis"):
            TieStatus.from_axes(False, False)


class TestFileStatus:
    """Tests for FileStatus quality flags."""

    def test_fixed_mask(self):
        assert FileStatus.FIXED_XYZ.fixed_mask() == (True, True, True)
        assert FileStatus.FIXED_XY.fixed_mask() == (True, True, False)
        assert FileStatus.FIXED_Z.fixed_mask() == (False, False, True)
        assert FileStatus.NORMAL.fixed_mask() == (False, False, False)

    def test_flags(self):
        assert FileStatus.POOR.is_poor
        assert not FileStatus.POOR.is_fixed
        assert FileStatus.FIXED_Z.is_fixed
        assert not FileStatus.NORMAL.is_fixed


class TestSimpleEnums:
    """Tests for plain value enums."""

    def test_crossing_status(self):
        assert CrossingStatus("skip") == CrossingStatus.SKIP

    def test_severity(self):
        assert Severity.ERROR.value == "error"
