# -*- coding: utf-8 -*-
"""Tests for applying solved offsets to full-rate navigation."""

import numpy as np
import pytest

from navadjust.enums import FileStatus
from navadjust.errors import ProjectStructureError
from navadjust.interface import NavAdjustContext
from navadjust.models import Vector3D
from navadjust.navigation import adjust_file_navigation
from navadjust.navigation import file_offsets_at
from navadjust.navigation import section_offsets_at
from navadjust.project.models import UncertaintyEllipsoid
from navadjust.solver import invert_navigation
from navadjust.ties import add_tie
from tests.conftest import make_crossing_project


def _ramp(project, file_id=0):
    """Give every sample of a file a z offset equal to its time / 100."""
    for section in project.files[file_id].sections:
        for sample in section.samples:
            sample.z_offset = sample.time_d / 100.0
            sample.lon_offset = 1.0e-5


class TestOffsetInterpolation:
    """Tests for section_offsets_at and file_offsets_at."""

    def test_between_samples(self, crossing_project):
        _ramp(crossing_project)
        section = crossing_project.files[0].sections[0]
        offsets = section_offsets_at(section, [0.0, 25.0, 100.0])
        assert offsets.shape == (3, 3)
        assert offsets[:, 2] == pytest.approx([0.0, 0.25, 1.0])
        assert offsets[:, 0] == pytest.approx([1.0e-5] * 3)
        assert offsets[:, 1] == pytest.approx([0.0] * 3)

    def test_held_constant_beyond_ends(self, crossing_project):
        _ramp(crossing_project)
        section = crossing_project.files[0].sections[0]
        offsets = section_offsets_at(section, np.array([-50.0, 500.0]))
        assert offsets[:, 2] == pytest.approx([0.0, 1.0])

    def test_across_sections(self, crossing_project):
        _ramp(crossing_project)
        offsets = file_offsets_at(crossing_project.files[0], [150.0, 200.0, 1000.0])
        assert offsets[:, 2] == pytest.approx([1.5, 2.0, 2.0])

    def test_no_samples(self, crossing_project):
        crossing_project.files[0].sections = []
        offsets = file_offsets_at(crossing_project.files[0], [1.0, 2.0])
        assert not offsets.any()


class TestAdjustFileNavigation:
    """Tests for adjust_file_navigation."""

    def test_applies_offsets(self, crossing_project):
        _ramp(crossing_project)
        lon, lat, dz = adjust_file_navigation(
            crossing_project, 0, [25.0, 75.0], [-70.0, -69.9], [45.0, 45.1]
        )
        assert lon == pytest.approx([-70.0 + 1.0e-5, -69.9 + 1.0e-5])
        assert lat == pytest.approx([45.0, 45.1])
        assert dz == pytest.approx([0.25, 0.75])

    def test_length_mismatch(self, crossing_project):
        with pytest.raises(ProjectStructureError, match="same length"):
            adjust_file_navigation(crossing_project, 0, [0.0, 1.0], [0.0], [0.0, 1.0])

    def test_unknown_file(self, crossing_project):
        with pytest.raises(ProjectStructureError):
            adjust_file_navigation(crossing_project, 7, [0.0], [0.0], [0.0])

    def test_after_inversion(self):
        """Navigation of the free file moves by the tie offset."""
        project = make_crossing_project(status_1=FileStatus.FIXED_XYZ)
        ctx = NavAdjustContext(project)
        add_tie(
            ctx,
            0,
            offset=Vector3D(10.0, 0.0, 0.0),
            uncertainty=UncertaintyEllipsoid.isotropic(1.0, 0.1),
        )
        assert invert_navigation(ctx)

        times = np.array([100000.0, 100050.0, 100200.0])
        lon = np.full(3, -69.995)
        lat = np.array([44.995, 45.0, 45.015])
        adjusted_lon, adjusted_lat, dz = adjust_file_navigation(project, 1, times, lon, lat)
        assert (adjusted_lon - lon) / project.mtodeglon == pytest.approx([10.0] * 3, abs=0.05)
        assert adjusted_lat - lat == pytest.approx([0.0] * 3, abs=1e-8)
        assert dz == pytest.approx([0.0] * 3, abs=0.01)

        fixed_lon, _, _ = adjust_file_navigation(project, 0, [0.0], [-70.0], [45.0])
        assert fixed_lon[0] == -70.0
