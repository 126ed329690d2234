# -*- coding: utf-8 -*-
"""Pytest configuration and fixtures.

This module provides small synthetic projects: straight survey lines
sampled every ``dt`` seconds, split into continuous sections, and the
crossings between them.
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from navadjust.constants import SNAV_NUM
from navadjust.enums import FileStatus
from navadjust.interface import NavAdjustContext
from navadjust.interface import Soundings
from navadjust.project.models import Crossing
from navadjust.project.models import NavFile
from navadjust.project.models import NavSample
from navadjust.project.models import Project
from navadjust.project.models import Section

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# =============================================================================
# Builders
# =============================================================================


def make_section(
    t0: float,
    lon0: float,
    lat0: float,
    dlon: float = 0.001,
    dlat: float = 0.0,
    continuity: bool = False,
    num_snav: int = SNAV_NUM,
    dt: float = 10.0,
) -> Section:
    """A straight section of ``num_snav`` samples."""
    samples = [
        NavSample(time_d=t0 + i * dt, lon=lon0 + i * dlon, lat=lat0 + i * dlat)
        for i in range(num_snav)
    ]
    return Section(num_pings=10 * num_snav, continuity=continuity, samples=samples)


def make_file(
    path: str,
    t0: float,
    lon0: float,
    lat0: float,
    dlon: float = 0.001,
    dlat: float = 0.0,
    num_sections: int = 2,
    survey: int = 0,
    status: FileStatus = FileStatus.NORMAL,
    dt: float = 10.0,
) -> NavFile:
    """A straight line split into continuous sections sharing their end samples."""
    sections = []
    for k in range(num_sections):
        start = k * (SNAV_NUM - 1)
        sections.append(
            make_section(
                t0 + start * dt,
                lon0 + start * dlon,
                lat0 + start * dlat,
                dlon=dlon,
                dlat=dlat,
                continuity=k > 0,
                dt=dt,
            )
        )
    return NavFile(path=path, name=path, survey=survey, status=status, sections=sections)


def make_project(files: list[NavFile], crossings: list[Crossing] | None = None) -> Project:
    project = Project(name="synthetic")
    for nav_file in files:
        project.add_file(nav_file)
    for crossing in crossings or []:
        project.add_crossing(crossing)
    return project


def make_crossing_project(
    survey_2: int = 0, status_1: FileStatus = FileStatus.NORMAL
) -> Project:
    """An east-west line (file 0) crossed by a north-south line (file 1).

    The lines cross near (-69.995, 45.0), inside section 0 of both files.
    """
    line_a = make_file("line_a.mb", 0.0, -70.0, 45.0, dlon=0.001, status=status_1)
    line_b = make_file(
        "line_b.mb", 100000.0, -69.995, 44.995, dlon=0.0, dlat=0.001, survey=survey_2
    )
    crossing = Crossing(
        file_id_1=0, section_1=0, file_id_2=1, section_2=0, overlap=60, true_crossing=True
    )
    return make_project([line_a, line_b], [crossing])


def textured_depth(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """A smooth seafloor with enough relief to register on (depth positive down)."""
    return 100.0 + 5.0 * np.sin(x / 15.0) + 3.0 * np.cos(y / 11.0)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def crossing_project() -> Project:
    """Two crossing lines in one survey with one unanalyzed crossing."""
    return make_crossing_project()


@pytest.fixture
def ctx(crossing_project: Project) -> NavAdjustContext:
    """Context without a serializer around :func:`crossing_project`."""
    return NavAdjustContext(crossing_project)


@pytest.fixture
def empty_soundings() -> Soundings:
    empty = np.zeros(0)
    return Soundings(lon=empty, lat=empty, depth=empty, valid=np.zeros(0, dtype=bool))
