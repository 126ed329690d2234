# -*- coding: utf-8 -*-
"""Misfit correlation search between two overlapping point sets.

Both point sets are averaged onto the same square grid (set 2 shifted by
the trial offset). Every lateral shift of grid 2 by up to half the grid and
every vertical offset in ``[dz - zwidth, dz + zwidth]`` is then scored
over the cells occupied in both grids with

    misfit = sqrt(sum((d1 - d2 - z) ** 2) / n) / n

where ``n`` is the overlap-cell count. Dividing by ``n`` a second time
favours shifts supported by many cells. Only shifts whose overlap count
exceeds the density threshold are candidates for the minimum.
"""

from __future__ import annotations

import logging

import numpy as np

from navadjust.constants import DEFAULT_ZOFFSET_WIDTH
from navadjust.misfit.grid import DepthGrid
from navadjust.misfit.grid import GridGeometry
from navadjust.misfit.histogram import equalization_intervals
from navadjust.misfit.models import MisfitResult
from navadjust.misfit.models import MisfitSettings
from navadjust.misfit.models import PointSet
from navadjust.misfit.models import XYMinimum
from navadjust.models import ZERO
from navadjust.models import Vector3D
from navadjust.project.models import UncertaintyEllipsoid

logger = logging.getLogger(__name__)

_DEGENERATE = 1.0e-9


def z_candidates(offset_z: float, zwidth: float, nz: int) -> np.ndarray:
    """Vertical offsets scanned by the search (a single one when zwidth is 0)."""
    if zwidth <= 0.0 or nz <= 1:
        return np.array([offset_z], dtype=np.float64)
    return np.linspace(offset_z - zwidth, offset_z + zwidth, nz)


def _overlap_slices(shift: int, dim: int) -> tuple[slice, slice]:
    """Slices pairing grid 1 cell ``i`` with grid 2 cell ``i - shift``."""
    return (
        slice(max(shift, 0), dim + min(shift, 0)),
        slice(max(-shift, 0), dim - max(shift, 0)),
    )


def misfit_volume(
    grid1: DepthGrid, grid2: DepthGrid, zs: np.ndarray, volume_dim: int
) -> tuple[np.ndarray, np.ndarray]:
    """Score every lateral shift and vertical offset.

    Returns:
        ``(volume, counts)`` with shapes (volume_dim, volume_dim, len(zs))
        and (volume_dim, volume_dim)
    """
    dim = grid1.geometry.dim
    half = volume_dim // 2
    volume = np.zeros((volume_dim, volume_dim, len(zs)), dtype=np.float64)
    counts = np.zeros((volume_dim, volume_dim), dtype=np.int64)

    occupied1 = grid1.occupied
    occupied2 = grid2.occupied
    for a in range(volume_dim):
        s1_i, s2_i = _overlap_slices(a - half, dim)
        for b in range(volume_dim):
            s1_j, s2_j = _overlap_slices(b - half, dim)
            both = occupied1[s1_i, s1_j] & occupied2[s2_i, s2_j]
            n = int(np.count_nonzero(both))
            counts[a, b] = n
            if n == 0:
                continue
            diff = grid1.mean[s1_i, s1_j][both] - grid2.mean[s2_i, s2_j][both]
            sum_d = diff.sum()
            sum_d2 = np.dot(diff, diff)
            sum_sq = np.clip(sum_d2 - 2.0 * zs * sum_d + n * zs * zs, 0.0, None)
            volume[a, b, :] = np.sqrt(sum_sq / n) / n
    return volume, counts


def _select_minimum(
    values: np.ndarray,
    counts: np.ndarray,
    distances: np.ndarray,
) -> int:
    """Index of the smallest value; ties go to larger counts, then the centre."""
    order = np.lexsort((distances, -counts, values))
    return int(order[0])


def _sigma_along(
    axis: np.ndarray, r: np.ndarray, dist: np.ndarray, cos_limit: float
) -> float:
    """Farthest qualifying distance in the direction of ``axis``."""
    moving = dist > 0.0
    if not moving.any():
        return 0.0
    d = dist[moving]
    cosines = np.abs(r[moving] @ axis) / d
    aligned = cosines > cos_limit
    if aligned.any():
        return float(d[aligned].max())
    return float(d[cosines == cosines.max()].max())


def estimate_uncertainty(
    r: np.ndarray, cos_limit: float
) -> UncertaintyEllipsoid:
    """Principal axes of the region around the minimum.

    Args:
        r: Positions of the qualifying cells relative to the minimum,
            shape (n, 3), in metres
        cos_limit: Cosine a direction must exceed to count along an axis
    """
    dist = np.sqrt((r * r).sum(axis=1))
    far = int(np.argmax(dist)) if len(dist) else 0
    sigma1 = float(dist[far]) if len(dist) else 0.0
    if sigma1 > 0.0:
        axis1 = r[far] / sigma1
    else:
        axis1 = np.array([1.0, 0.0, 0.0])

    axis2 = np.array([-axis1[1], axis1[0], 0.0])
    norm2 = np.linalg.norm(axis2)
    axis2 = axis2 / norm2 if norm2 > _DEGENERATE else np.array([0.0, 1.0, 0.0])

    axis3 = np.array([0.0, 0.0, 1.0]) - axis1[2] * axis1
    norm3 = np.linalg.norm(axis3)
    axis3 = axis3 / norm3 if norm3 > _DEGENERATE else np.array([0.0, 0.0, 1.0])

    return UncertaintyEllipsoid(
        sigma1=sigma1,
        axis1=tuple(float(v) for v in axis1),
        sigma2=_sigma_along(axis2, r, dist, cos_limit),
        axis2=tuple(float(v) for v in axis2),
        sigma3=_sigma_along(axis3, r, dist, cos_limit),
        axis3=tuple(float(v) for v in axis3),
    ).floored()


def compute_misfit(
    set1: PointSet,
    set2: PointSet,
    trial_offset: Vector3D = ZERO,
    zwidth: float = DEFAULT_ZOFFSET_WIDTH,
    settings: MisfitSettings | None = None,
) -> MisfitResult:
    """Find the offset registering ``set2`` onto ``set1``.

    Args:
        set1: Reference point set
        set2: Point set to move
        trial_offset: Offset around which to search (metres)
        zwidth: Half-width of the vertical search (metres)
        settings: Search tunables

    Returns:
        The search result; ``valid`` is False and the uncertainty is the
        unset sentinel when no shift has enough overlap
    """
    settings = settings or MisfitSettings()
    x1, y1, d1 = set1.valid_points()
    x2, y2, d2 = set2.valid_points()
    x2 = x2 + trial_offset.x
    y2 = y2 + trial_offset.y

    geometry = GridGeometry.spanning([(x1, y1), (x2, y2)], settings.grid_dim)
    grid1 = DepthGrid.accumulate(geometry, x1, y1, d1)
    grid2 = DepthGrid.accumulate(geometry, x2, y2, d2)
    zs = z_candidates(trial_offset.z, zwidth, settings.nz)
    volume, counts = misfit_volume(grid1, grid2, zs, settings.volume_dim)
    intervals = equalization_intervals(volume, settings.num_intervals)

    threshold = float(settings.min_density)
    relaxed = False
    if not (counts > threshold).any():
        threshold /= settings.density_relaxation
        relaxed = True
        logger.warning(
            "No shift exceeds %d overlap cells, relaxing threshold to %g",
            settings.min_density,
            threshold,
        )

    result = MisfitResult(
        offset=trial_offset,
        count=0,
        misfit=0.0,
        uncertainty=UncertaintyEllipsoid.unset(),
        volume=volume,
        counts=counts,
        intervals=intervals,
        threshold=threshold,
        relaxed=relaxed,
        valid=False,
        trial_offset=trial_offset,
        cell_size=geometry.cell_size,
        z_candidates=zs,
    )

    accepted = counts > threshold
    if not accepted.any():
        logger.warning(
            "Misfit search found no shift with more than %g overlap cells "
            "(%d and %d valid points)",
            threshold,
            set1.num_valid,
            set2.num_valid,
        )
        return result

    half = settings.volume_dim // 2
    shifts = (np.arange(settings.volume_dim) - half) * geometry.cell_size
    ia, ib, ik = np.nonzero(np.broadcast_to(accepted[:, :, None], volume.shape))
    rx = shifts[ia]
    ry = shifts[ib]
    rz = zs[ik] - trial_offset.z
    best = _select_minimum(
        volume[ia, ib, ik], counts[ia, ib], rx * rx + ry * ry + rz * rz
    )
    misfit_min = float(volume[ia[best], ib[best], ik[best]])

    qualifying = volume[ia, ib, ik] <= settings.uncertainty_factor * misfit_min
    r = np.column_stack(
        (
            rx[qualifying] - rx[best],
            ry[qualifying] - ry[best],
            rz[qualifying] - rz[best],
        )
    )

    result.offset = Vector3D(
        trial_offset.x + float(rx[best]),
        trial_offset.y + float(ry[best]),
        float(zs[ik[best]]),
    )
    result.count = int(counts[ia[best], ib[best]])
    result.misfit = misfit_min
    result.uncertainty = estimate_uncertainty(r, settings.axis_cosine)
    result.valid = True
    result.xy_minimum = misfit_xy(result, trial_offset.z)

    logger.debug(
        "Misfit minimum %.6g at (%.3f, %.3f, %.3f) from %d cells, sigma %.3f/%.3f/%.3f",
        misfit_min,
        result.offset.x,
        result.offset.y,
        result.offset.z,
        result.count,
        *result.uncertainty.sigmas,
    )
    return result


def misfit_xy(result: MisfitResult, offset_z: float) -> XYMinimum:
    """2-D minimum of the stored volume at the slice nearest ``offset_z``.

    Reuses the volume of ``result`` without rebuilding any grid.
    """
    k = int(np.argmin(np.abs(result.z_candidates - offset_z)))
    z = float(result.z_candidates[k])
    accepted = result.accepted_mask()
    if not accepted.any():
        return XYMinimum(
            offset=Vector3D(result.trial_offset.x, result.trial_offset.y, z),
            misfit=0.0,
            count=0,
            valid=False,
        )

    shifts = result.shift_offsets()
    ia, ib = np.nonzero(accepted)
    rx = shifts[ia]
    ry = shifts[ib]
    best = _select_minimum(
        result.volume[ia, ib, k], result.counts[ia, ib], rx * rx + ry * ry
    )
    return XYMinimum(
        offset=Vector3D(
            result.trial_offset.x + float(rx[best]),
            result.trial_offset.y + float(ry[best]),
            z,
        ),
        misfit=float(result.volume[ia[best], ib[best], k]),
        count=int(result.counts[ia[best], ib[best]]),
        valid=True,
    )
