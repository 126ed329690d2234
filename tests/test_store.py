# -*- coding: utf-8 -*-
"""Tests for JSON persistence of projects."""

import orjson
import pytest

from navadjust.enums import CrossingStatus
from navadjust.enums import TieStatus
from navadjust.interface import NavAdjustContext
from navadjust.models import Vector3D
from navadjust.project import JsonProjectSerializer
from navadjust.project import load_project
from navadjust.project import save_project
from navadjust.project.models import UncertaintyEllipsoid
from navadjust.project.store import project_from_bytes
from navadjust.project.store import project_to_bytes
from navadjust.ties import add_global_tie
from navadjust.ties import add_tie
from tests.conftest import make_crossing_project


@pytest.fixture
def tied_project():
    """The crossing project with two ties and a global tie."""
    ctx = NavAdjustContext(make_crossing_project(survey_2=1))
    add_tie(
        ctx,
        0,
        offset=Vector3D(3.5, -1.25, 0.4),
        uncertainty=UncertaintyEllipsoid.isotropic(2.0, 0.2),
        status=TieStatus.XY,
    )
    add_tie(ctx, 0)
    add_global_tie(ctx, 1, 1, offset=Vector3D(0.0, 0.0, 1.5), reference_grid="ref.grd")
    return ctx.project


class TestSaveLoad:
    """Tests for saving and loading projects."""

    def test_roundtrip(self, tmp_path, tied_project):
        path = tmp_path / "project.json"
        save_project(path, tied_project)
        loaded = load_project(path)

        assert loaded == tied_project
        assert loaded.num_surveys == 2
        tie = loaded.crossings[0].ties[0]
        assert tie.status == TieStatus.XY
        assert tie.offset_m == Vector3D(3.5, -1.25, 0.4)
        assert tie.uncertainty == UncertaintyEllipsoid.isotropic(2.0, 0.2)
        assert loaded.files[1].sections[1].global_tie.reference_grid == "ref.grd"

    def test_minified(self, tied_project):
        data = project_to_bytes(tied_project, minify=True)
        assert b"\n" not in data
        assert project_from_bytes(data) == tied_project

    def test_counters_rebuilt_on_load(self, tied_project):
        data = orjson.loads(project_to_bytes(tied_project))
        data["num_ties"] = 99
        data["num_crossings_analyzed"] = 0
        data["files"][0]["sections"][0]["samples"][5]["num_ties"] = 7
        project = project_from_bytes(orjson.dumps(data))
        assert project.num_ties == 2
        assert project.num_crossings_analyzed == 1
        assert project.crossings[0].status == CrossingStatus.SET
        assert project.files[0].sections[0].samples[5].num_ties == 1

    def test_enums_stored_as_values(self, tied_project):
        data = orjson.loads(project_to_bytes(tied_project))
        assert data["crossings"][0]["status"] == CrossingStatus.SET.value
        assert data["crossings"][0]["ties"][0]["status"] == TieStatus.XY.value


class TestJsonProjectSerializer:
    """Tests for write-behind saving through the serializer."""

    def test_saves_after_interval(self, tmp_path):
        path = tmp_path / "project.json"
        serializer = JsonProjectSerializer(path)
        ctx = NavAdjustContext(make_crossing_project(), serializer, save_interval=2)

        add_tie(ctx, 0)
        assert not path.exists()
        assert ctx.pending_edits == 1

        add_tie(ctx, 0)
        assert path.exists()
        assert ctx.pending_edits == 0
        assert serializer.load().num_ties == 2

    def test_flush(self, tmp_path):
        path = tmp_path / "project.json"
        ctx = NavAdjustContext(make_crossing_project(), JsonProjectSerializer(path))
        add_tie(ctx, 0)
        assert ctx.flush() is None
        assert load_project(path).num_ties == 1
