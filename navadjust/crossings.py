# -*- coding: utf-8 -*-
"""Crossing detection between section footprints.

A section footprint is its adjusted track buffered by half the swath width
in local metres around the project centre. Footprints are indexed in a
shapely ``STRtree``; every intersecting pair that is not the same section,
or a section and its continuous successor, becomes a crossing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from shapely import STRtree
from shapely.geometry import LineString
from shapely.geometry import Point

from navadjust.constants import DEFAULT_SWATH_WIDTH
from navadjust.errors import OperationResult
from navadjust.errors import ProjectStructureError
from navadjust.errors import operation
from navadjust.geo_utils import to_local
from navadjust.project.models import Crossing

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

    from navadjust.interface import NavAdjustContext
    from navadjust.project.models import Project
    from navadjust.project.models import Section

logger = logging.getLogger(__name__)

SectionKey = tuple[int, int]


def project_origin(project: Project) -> tuple[float, float]:
    """Centre (lon, lat) of the raw sample positions."""
    lons = [s.lon for f in project.files for sec in f.sections for s in sec.samples]
    lats = [s.lat for f in project.files for sec in f.sections for s in sec.samples]
    if not lons:
        return (0.0, 0.0)
    return (0.5 * (min(lons) + max(lons)), 0.5 * (min(lats) + max(lats)))


def section_track(
    section: Section, origin: tuple[float, float], scale: tuple[float, float]
) -> BaseGeometry | None:
    """Adjusted track of a section in local metres; None without samples."""
    if not section.samples:
        return None
    lon = np.array([s.lon + s.lon_offset for s in section.samples])
    lat = np.array([s.lat + s.lat_offset for s in section.samples])
    x, y = to_local(lon, lat, origin, scale)
    coords = list(zip(x.tolist(), y.tolist()))
    if len(set(coords)) < 2:
        return Point(coords[0])
    return LineString(coords)


def _is_neighbour(project: Project, key_1: SectionKey, key_2: SectionKey) -> bool:
    """True for the same section or two consecutive continuous sections."""
    (file_1, section_1), (file_2, section_2) = sorted((key_1, key_2))
    if file_1 != file_2:
        return False
    if section_1 == section_2:
        return True
    return (
        section_2 == section_1 + 1
        and project.files[file_2].sections[section_2].continuity
    )


def overlap_percent(footprint_1: BaseGeometry, footprint_2: BaseGeometry) -> int:
    """Intersection area as a percentage of the smaller footprint."""
    smaller = min(footprint_1.area, footprint_2.area)
    if smaller <= 0.0:
        return 0
    area = footprint_1.intersection(footprint_2).area
    return int(np.clip(round(100.0 * area / smaller), 0, 100))


@operation
def find_crossings(
    ctx: NavAdjustContext, swath_width: float = DEFAULT_SWATH_WIDTH
) -> OperationResult:
    """Append a crossing for every new pair of overlapping sections.

    Args:
        ctx: Operation context
        swath_width: Swath width used to buffer the tracks (metres)

    Returns:
        Result whose value is the list of new crossing ids
    """
    if swath_width <= 0.0:
        raise ProjectStructureError(f"Swath width must be positive, got {swath_width}")

    project = ctx.project
    origin = project_origin(project)
    scale = project.scale

    keys: list[SectionKey] = []
    tracks: list[BaseGeometry] = []
    footprints: list[BaseGeometry] = []
    for file_id, nav_file in enumerate(project.files):
        for section_id, section in enumerate(nav_file.sections):
            track = section_track(section, origin, scale)
            if track is None:
                continue
            keys.append((file_id, section_id))
            tracks.append(track)
            footprints.append(track.buffer(0.5 * swath_width))

    existing = {
        tuple(
            sorted(
                ((c.file_id_1, c.section_1), (c.file_id_2, c.section_2))
            )
        )
        for c in project.crossings
    }

    tree = STRtree(footprints)
    added: list[int] = []
    for i, footprint in enumerate(footprints):
        for j in sorted(int(k) for k in tree.query(footprint, predicate="intersects")):
            if j <= i:
                continue
            key_1, key_2 = keys[i], keys[j]
            if _is_neighbour(project, key_1, key_2):
                continue
            pair = (key_1, key_2)
            if pair in existing:
                continue
            overlap = overlap_percent(footprint, footprints[j])
            if overlap == 0:
                continue
            crossing = Crossing(
                file_id_1=key_1[0],
                section_1=key_1[1],
                file_id_2=key_2[0],
                section_2=key_2[1],
                overlap=overlap,
                true_crossing=bool(tracks[i].intersects(tracks[j])),
            )
            added.append(project.add_crossing(crossing))
            existing.add(pair)

    logger.info(
        "Found %d new crossings among %d sections (%d crossings total)",
        len(added),
        len(keys),
        project.num_crossings,
    )
    messages = []
    if added:
        save_message = ctx.record_edit()
        if save_message is not None:
            messages.append(save_message)
    return OperationResult.ok(added, *messages)
