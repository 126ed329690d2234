# -*- coding: utf-8 -*-
"""Tests for GeoJSON export functionality."""

import orjson
import pytest

from navadjust.enums import InversionStatus
from navadjust.geojson import SURVEY_COLORS
from navadjust.geojson import convert_project_to_geojson
from navadjust.geojson import project_to_geojson
from navadjust.geojson import tie_features
from navadjust.interface import NavAdjustContext
from navadjust.models import Vector3D
from navadjust.project.models import UncertaintyEllipsoid
from navadjust.solver import invert_navigation
from navadjust.ties import add_global_tie
from navadjust.ties import add_tie
from tests.conftest import make_crossing_project
from tests.conftest import make_section

UNCERTAINTY = UncertaintyEllipsoid.isotropic(1.0, 0.1)


@pytest.fixture
def tied_ctx():
    """Two crossing lines in different surveys with a tie and a global tie."""
    ctx = NavAdjustContext(make_crossing_project(survey_2=1))
    add_tie(ctx, 0, offset=Vector3D(4.0, 0.0, 0.5), uncertainty=UNCERTAINTY)
    add_global_tie(ctx, 0, 1, snav=3, uncertainty=UNCERTAINTY, reference_grid="ref.grd")
    return ctx


def _by_type(geojson, feature_type):
    return [f for f in geojson["features"] if f["properties"]["type"] == feature_type]


class TestProjectToGeoJSON:
    """Tests for project_to_geojson."""

    def test_structure(self, crossing_project):
        """Test that every section becomes a LineString."""
        geojson = project_to_geojson(crossing_project)
        assert geojson["type"] == "FeatureCollection"
        assert len(geojson["features"]) == 4
        assert geojson["properties"]["name"] == "synthetic"
        assert geojson["properties"]["adjusted"] is True
        assert geojson["properties"]["inversion_status"] == InversionStatus.NONE.value

        feature = geojson["features"][0]
        assert feature["geometry"]["type"] == "LineString"
        assert len(feature["geometry"]["coordinates"]) == 11
        assert feature["properties"]["file"] == "line_a.mb"
        assert feature["properties"]["section_id"] == 0

    def test_survey_colours(self, tied_ctx):
        """Test that sections are coloured by survey."""
        sections = _by_type(project_to_geojson(tied_ctx.project), "section")
        assert {f["properties"]["stroke"] for f in sections[:2]} == {SURVEY_COLORS[0]}
        assert {f["properties"]["stroke"] for f in sections[2:]} == {SURVEY_COLORS[1]}

    def test_short_sections_are_skipped(self, crossing_project):
        crossing_project.files[0].sections.append(
            make_section(500.0, -69.9, 45.0, num_snav=1)
        )
        assert len(project_to_geojson(crossing_project)["features"]) == 4

    def test_tie_points(self, tied_ctx):
        """Test that ties sit on their section 1 sample."""
        geojson = project_to_geojson(tied_ctx.project)
        ties = _by_type(geojson, "tie")
        assert len(ties) == 1
        properties = ties[0]["properties"]
        assert properties["crossing_id"] == 0
        assert properties["snav_1"] == 5
        assert properties["offset_x_m"] == pytest.approx(4.0)
        assert "inversion_offset_x_m" not in properties

        lon, lat = ties[0]["geometry"]["coordinates"]
        assert lon == pytest.approx(-69.995, abs=1e-6)
        assert lat == pytest.approx(45.0, abs=1e-6)

    def test_global_tie_points(self, tied_ctx):
        global_ties = _by_type(project_to_geojson(tied_ctx.project), "global_tie")
        assert len(global_ties) == 1
        properties = global_ties[0]["properties"]
        assert properties["reference_grid"] == "ref.grd"
        assert properties["snav"] == 3
        assert properties["sigma"] == [1.0, 1.0, 0.1]

    def test_without_ties(self, tied_ctx):
        geojson = project_to_geojson(tied_ctx.project, include_ties=False)
        assert _by_type(geojson, "tie") == []
        assert len(geojson["features"]) == 4

    def test_adjusted_positions(self, crossing_project):
        """Test that offsets move the exported positions only when adjusted."""
        sample = crossing_project.files[0].sections[0].samples[0]
        sample.lon_offset = 0.001
        sample.lat_offset = -0.002

        raw = project_to_geojson(crossing_project, adjusted=False)
        adjusted = project_to_geojson(crossing_project, adjusted=True)
        assert raw["features"][0]["geometry"]["coordinates"][0] == pytest.approx(
            [-70.0, 45.0]
        )
        assert adjusted["features"][0]["geometry"]["coordinates"][0] == pytest.approx(
            [-69.999, 44.998]
        )

    def test_inversion_values(self, tied_ctx):
        """Test that solved offsets are exported once the inversion is current."""
        assert invert_navigation(tied_ctx)
        features = tie_features(tied_ctx.project)
        properties = features[0]["properties"]
        assert properties["inversion_status"] == InversionStatus.CURRENT.value
        assert properties["inversion_offset_x_m"] == pytest.approx(4.0, abs=0.01)
        assert properties["residual_m"] == pytest.approx(0.0, abs=0.01)


class TestConvertProjectToGeoJSON:
    """Tests for convert_project_to_geojson."""

    def test_returns_string(self, tied_ctx):
        result = convert_project_to_geojson(tied_ctx.project)
        data = orjson.loads(result)
        assert data["type"] == "FeatureCollection"
        assert len(data["features"]) == 6

    def test_writes_file(self, tmp_path, tied_ctx):
        output = tmp_path / "project.geojson"
        result = convert_project_to_geojson(tied_ctx.project, output_path=output)
        assert output.exists()
        assert output.read_text(encoding="utf-8") == result

    def test_minify(self, tied_ctx):
        minified = convert_project_to_geojson(tied_ctx.project, minify=True)
        pretty = convert_project_to_geojson(tied_ctx.project)
        assert "\n" not in minified
        assert len(minified) < len(pretty)
        assert orjson.loads(minified) == orjson.loads(pretty)
