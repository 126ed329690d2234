# -*- coding: utf-8 -*-
"""Tests for the core value types and the project data model."""

import pytest
from pydantic import ValidationError

from navadjust.constants import SIGMA_SMALL
from navadjust.constants import SIGMA_UNSET
from navadjust.constants import SIGMA_ZSMALL
from navadjust.constants import SNAV_NUM
from navadjust.enums import CrossingStatus
from navadjust.enums import FileStatus
from navadjust.enums import InversionStatus
from navadjust.errors import ProjectStructureError
from navadjust.models import ZERO
from navadjust.models import Vector3D
from navadjust.project.models import Crossing
from navadjust.project.models import NavSample
from navadjust.project.models import Project
from navadjust.project.models import Section
from navadjust.project.models import Tie
from navadjust.project.models import UncertaintyEllipsoid
from tests.conftest import make_crossing_project
from tests.conftest import make_section

# ---------------------------------------------------------------------------
# Vector3D
# ---------------------------------------------------------------------------


class TestVector3D:
    """Tests for Vector3D."""

    def test_sub(self):
        assert Vector3D(4, 5, 6) - Vector3D(1, 2, 3) == Vector3D(3, 3, 3)

    def test_zero(self):
        assert Vector3D(0, 0, 0) == ZERO
        assert Vector3D(1.5, -2.0, 0.5) - Vector3D(1.5, -2.0, 0.5) == ZERO


# ---------------------------------------------------------------------------
# Uncertainty
# ---------------------------------------------------------------------------


class TestUncertaintyEllipsoid:
    """Tests for UncertaintyEllipsoid."""

    def test_unset_sentinel(self):
        unc = UncertaintyEllipsoid.unset()
        assert unc.is_unset
        assert unc.sigmas == (SIGMA_UNSET, SIGMA_UNSET, SIGMA_UNSET)

    def test_isotropic(self):
        unc = UncertaintyEllipsoid.isotropic(2.0, 0.5)
        assert unc.sigmas == (2.0, 2.0, 0.5)
        assert not unc.is_unset
        assert unc.is_positive

    def test_floored(self):
        unc = UncertaintyEllipsoid(sigma1=0.0, sigma2=0.01, sigma3=0.0).floored()
        assert unc.sigmas == (SIGMA_SMALL, SIGMA_SMALL, SIGMA_ZSMALL)

    def test_frozen(self):
        unc = UncertaintyEllipsoid.isotropic(1.0, 1.0)
        with pytest.raises(ValidationError):
            unc.sigma1 = 3.0


# ---------------------------------------------------------------------------
# Navigation samples and ties
# ---------------------------------------------------------------------------


class TestNavSample:
    """Tests for NavSample offset conversion."""

    def test_offset_roundtrip(self):
        scale = (1.0e-5, 9.0e-6)
        sample = NavSample(time_d=0.0, lon=-70.0, lat=45.0)
        sample.set_offset_m(Vector3D(10.0, -20.0, 1.5), scale)
        assert sample.lon_offset == pytest.approx(1.0e-4)
        assert sample.lat_offset == pytest.approx(-1.8e-4)
        offset = sample.offset_m(scale)
        assert offset.x == pytest.approx(10.0)
        assert offset.y == pytest.approx(-20.0)
        assert offset.z == pytest.approx(1.5)


class TestTie:
    """Tests for tie offset bookkeeping."""

    def test_set_offset_keeps_degrees_in_step(self):
        tie = Tie(snav_1=0, snav_2=0)
        tie.set_offset(Vector3D(100.0, 50.0, 2.0), (1.0e-5, 1.0e-5))
        assert tie.offset_m == Vector3D(100.0, 50.0, 2.0)
        assert tie.offset_x == pytest.approx(1.0e-3)
        assert tie.offset_y == pytest.approx(5.0e-4)

    def test_clear_inversion(self):
        tie = Tie(snav_1=0, snav_2=0, inversion_offset_x_m=3.0, rsigma_m=1.0)
        tie.clear_inversion(InversionStatus.OLD)
        assert tie.inversion_status == InversionStatus.OLD
        assert tie.inversion_offset_m == ZERO
        assert tie.rsigma_m == 0.0

    def test_sample_index_bounds(self):
        with pytest.raises(ValidationError):
            Tie(snav_1=SNAV_NUM, snav_2=0)


# ---------------------------------------------------------------------------
# Sections and project
# ---------------------------------------------------------------------------


class TestSection:
    """Tests for Section."""

    def test_times_and_bounds(self):
        section = make_section(100.0, -70.0, 45.0, dlon=0.001, dt=5.0)
        assert section.num_snav == SNAV_NUM
        assert section.btime_d == 100.0
        assert section.etime_d == 100.0 + 5.0 * (SNAV_NUM - 1)
        lon_min, lon_max, lat_min, lat_max = section.bounds
        assert lon_min == pytest.approx(-70.0)
        assert lon_max == pytest.approx(-70.0 + 0.001 * (SNAV_NUM - 1))
        assert lat_min == lat_max == pytest.approx(45.0)

    def test_too_many_samples(self):
        samples = [NavSample(time_d=i, lon=0.0, lat=0.0) for i in range(SNAV_NUM + 1)]
        with pytest.raises(ValidationError, match="at most"):
            Section(samples=samples)

    def test_empty_section(self):
        section = Section()
        assert section.num_snav == 0
        assert section.bounds == (0.0, 0.0, 0.0, 0.0)


class TestProject:
    """Tests for the Project container."""

    def test_counts(self):
        project = make_crossing_project()
        assert project.num_files == 2
        assert project.num_sections == 4
        assert project.num_samples == 4 * SNAV_NUM
        assert project.num_crossings == 1
        assert project.num_goodcrossings == 1
        assert project.num_truecrossings == 1
        assert project.num_crossings_analyzed == 0

    def test_scale(self):
        project = make_crossing_project()
        mtodeglon, mtodeglat = project.scale
        # roughly 78.8 km per degree of longitude and 111.1 km per degree
        # of latitude at 45 degrees
        assert 1.0 / mtodeglon == pytest.approx(78_850.0, rel=0.01)
        assert 1.0 / mtodeglat == pytest.approx(111_132.0, rel=0.01)

    def test_lookup_errors(self):
        project = make_crossing_project()
        with pytest.raises(ProjectStructureError):
            project.get_file(5)
        with pytest.raises(ProjectStructureError):
            project.get_section(0, 9)
        with pytest.raises(ProjectStructureError):
            project.get_crossing(1)
        with pytest.raises(ProjectStructureError):
            project.get_tie(0, 0)

    def test_add_crossing_checks_sections(self):
        project = make_crossing_project()
        with pytest.raises(ProjectStructureError):
            project.add_crossing(
                Crossing(file_id_1=0, section_1=0, file_id_2=1, section_2=7)
            )

    def test_add_file_creates_surveys(self):
        project = make_crossing_project(survey_2=2)
        assert project.num_surveys == 3

    def test_loading_creates_missing_surveys(self):
        data = make_crossing_project(survey_2=2).model_dump(mode="json")
        data["surveys"] = [{"name": "north"}]
        project = Project.model_validate(data)
        assert [s.name for s in project.surveys] == ["north", "survey 1", "survey 2"]

    def test_effective_status(self):
        project = make_crossing_project()
        project.surveys[0].status = FileStatus.POOR
        assert project.effective_status(0) == FileStatus.POOR
        project.files[0].status = FileStatus.FIXED_XY
        assert project.effective_status(0) == FileStatus.FIXED_XY

    def test_set_crossing_status_counts(self):
        project = make_crossing_project()
        project.set_crossing_status(0, CrossingStatus.SKIP)
        assert project.num_crossings_analyzed == 1
        assert project.num_truecrossings_analyzed == 1
        project.set_crossing_status(0, CrossingStatus.SET)
        assert project.num_crossings_analyzed == 1
        project.set_crossing_status(0, CrossingStatus.NONE)
        assert project.num_crossings_analyzed == 0
        assert project.num_truecrossings_analyzed == 0

    def test_recount(self):
        project = make_crossing_project()
        crossing = project.crossings[0]
        crossing.ties.append(Tie(snav_1=2, snav_2=3))
        crossing.status = CrossingStatus.SET
        project.recount()
        assert project.num_ties == 1
        assert project.num_crossings_analyzed == 1
        assert project.files[0].sections[0].samples[2].num_ties == 1
        assert project.files[1].sections[0].samples[3].num_ties == 1

    def test_mark_inversion_old(self):
        project = make_crossing_project()
        project.mark_inversion_old()
        assert project.inversion_status == InversionStatus.NONE
        project.inversion_status = InversionStatus.CURRENT
        project.mark_inversion_old()
        assert project.inversion_status == InversionStatus.OLD
