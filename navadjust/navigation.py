# -*- coding: utf-8 -*-
"""Applying solved sample offsets to full-rate navigation.

Offsets are known at the representative samples only; between samples they
are interpolated linearly in time and held constant beyond the first and
last sample.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from navadjust.errors import ProjectStructureError

if TYPE_CHECKING:
    from navadjust.project.models import NavFile
    from navadjust.project.models import Project
    from navadjust.project.models import Section


def _interpolate_offsets(samples: list, times: np.ndarray) -> np.ndarray:
    """Offsets (lon deg, lat deg, z m) at ``times``, shape (n, 3)."""
    times = np.asarray(times, dtype=np.float64)
    result = np.zeros((times.size, 3))
    if not samples:
        return result
    sample_times = np.array([s.time_d for s in samples])
    order = np.argsort(sample_times, kind="stable")
    sample_times = sample_times[order]
    offsets = np.array([(s.lon_offset, s.lat_offset, s.z_offset) for s in samples])[
        order
    ]
    for axis in range(3):
        result[:, axis] = np.interp(times.ravel(), sample_times, offsets[:, axis])
    return result


def section_offsets_at(section: Section, times) -> np.ndarray:
    """Offsets of a section interpolated to ``times``.

    Args:
        section: Section holding the solved sample offsets
        times: Epoch seconds

    Returns:
        Array of shape (n, 3): longitude and latitude offsets in degrees,
        vertical offset in metres
    """
    return _interpolate_offsets(section.samples, times)


def file_offsets_at(nav_file: NavFile, times) -> np.ndarray:
    """Offsets of a whole file interpolated to ``times``, see :func:`section_offsets_at`."""
    samples = [s for section in nav_file.sections for s in section.samples]
    return _interpolate_offsets(samples, times)


def adjust_file_navigation(
    project: Project, file_id: int, times, lon, lat
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Apply the solved offsets of a file to its full-rate navigation.

    Args:
        project: Project holding the solution
        file_id: File the navigation belongs to
        times: Epoch seconds of the navigation records
        lon: Raw longitudes (degrees)
        lat: Raw latitudes (degrees)

    Returns:
        ``(lon, lat, z_offset)`` with the corrected positions and the vertical
        offset to add to the depths

    Raises:
        ProjectStructureError: Unknown file or mismatched array lengths
    """
    nav_file = project.get_file(file_id)
    times = np.asarray(times, dtype=np.float64)
    lon = np.asarray(lon, dtype=np.float64)
    lat = np.asarray(lat, dtype=np.float64)
    if not times.shape == lon.shape == lat.shape:
        raise ProjectStructureError(
            "Navigation arrays must have the same length", file_id=file_id
        )
    offsets = file_offsets_at(nav_file, times)
    return lon + offsets[:, 0], lat + offsets[:, 1], offsets[:, 2].copy()
