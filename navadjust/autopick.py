# -*- coding: utf-8 -*-
"""Automatic tie picking.

Runs the misfit correlation engine over every unanalyzed crossing (or every
section without a global tie, against a reference surface) and adds a tie
wherever the correlation is well constrained:

1. load both sets of soundings through the swath loader
2. project them into local metres around the crossing
3. search around the current solved offset difference
4. accept when the result is valid, ``sigma1`` is small relative to the
   overlap extent and enough cells support the minimum

Cancellation is checked between crossings only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from navadjust.constants import AUTOPICK_MIN_OVERLAP
from navadjust.constants import AUTOPICK_SIGMA_RATIO
from navadjust.enums import CrossingStatus
from navadjust.enums import TieStatus
from navadjust.errors import NavAdjustMessage
from navadjust.errors import OperationResult
from navadjust.errors import operation
from navadjust.geo_utils import to_local
from navadjust.misfit import MisfitSettings
from navadjust.misfit import PointSet
from navadjust.misfit import compute_misfit
from navadjust.ties import add_global_tie
from navadjust.ties import add_tie
from navadjust.ties import skip_crossing

if TYPE_CHECKING:
    from navadjust.interface import CancellationToken
    from navadjust.interface import NavAdjustContext
    from navadjust.interface import ProgressCallback
    from navadjust.interface import ReferenceGridReader
    from navadjust.interface import SwathLoader
    from navadjust.misfit import MisfitResult
    from navadjust.project.models import Section

logger = logging.getLogger(__name__)


class AutoPickSettings(BaseModel):
    """Acceptance rules of the auto-picker."""

    model_config = ConfigDict(frozen=True)

    sigma_ratio: float = Field(default=AUTOPICK_SIGMA_RATIO, gt=0.0)
    min_overlap: int = Field(default=AUTOPICK_MIN_OVERLAP, ge=0, le=100)
    true_crossings_only: bool = False
    skip_rejected: bool = False
    min_count: int = Field(default=0, ge=0)
    zwidth: float | None = Field(default=None, ge=0.0)
    horizontal: bool = False
    misfit: MisfitSettings = Field(default_factory=MisfitSettings)

    def search_zwidth(self, project_zwidth: float) -> float:
        """Half-width of the vertical search; zero for horizontal picks."""
        if self.horizontal:
            return 0.0
        return self.zwidth if self.zwidth is not None else project_zwidth

    @property
    def tie_status(self) -> TieStatus:
        """Status of committed ties; horizontal picks constrain xy only."""
        return TieStatus.XY if self.horizontal else TieStatus.XYZ


@dataclass
class AutoPickReport:
    """Outcome of one auto-pick run.

    ``picked`` and ``rejected`` hold crossing ids for crossings and
    ``(file_id, section_id)`` pairs for global ties.
    """

    attempted: int = 0
    picked: list = field(default_factory=list)
    rejected: list = field(default_factory=list)
    cancelled: bool = False
    messages: list[NavAdjustMessage] = field(default_factory=list)


def overlap_box(set1: PointSet, set2: PointSet) -> tuple[float, float, float, float] | None:
    """Intersection of the bounding boxes of the valid points.

    Returns:
        ``(xmin, xmax, ymin, ymax)`` or None when the boxes are disjoint
    """
    if set1.num_valid == 0 or set2.num_valid == 0:
        return None
    x1, y1, _ = set1.valid_points()
    x2, y2, _ = set2.valid_points()
    xmin = max(x1.min(), x2.min())
    xmax = min(x1.max(), x2.max())
    ymin = max(y1.min(), y2.min())
    ymax = min(y1.max(), y2.max())
    if xmin > xmax or ymin > ymax:
        return None
    return (float(xmin), float(xmax), float(ymin), float(ymax))


def overlap_extent(box: tuple[float, float, float, float]) -> float:
    """Largest side of an overlap box."""
    xmin, xmax, ymin, ymax = box
    return max(xmax - xmin, ymax - ymin)


def nearest_sample(
    section: Section,
    point: tuple[float, float],
    origin: tuple[float, float],
    scale: tuple[float, float],
) -> int:
    """Index of the sample whose raw position is closest to ``point`` (local m)."""
    x, y = to_local(
        np.array([s.lon for s in section.samples]),
        np.array([s.lat for s in section.samples]),
        origin,
        scale,
    )
    return int(np.argmin(np.hypot(x - point[0], y - point[1])))


def _section_origin(section: Section) -> tuple[float, float]:
    lon_min, lon_max, lat_min, lat_max = section.bounds
    return (0.5 * (lon_min + lon_max), 0.5 * (lat_min + lat_max))


def is_acceptable(
    result: MisfitResult, extent: float, settings: AutoPickSettings
) -> bool:
    """True if a correlation is constrained well enough to become a tie."""
    return (
        result.valid
        and result.uncertainty.sigma1 < settings.sigma_ratio * extent
        and result.count >= settings.min_count
    )


def _candidate_crossings(ctx: NavAdjustContext, settings: AutoPickSettings) -> list[int]:
    project = ctx.project
    candidates = []
    for crossing_id, crossing in enumerate(project.crossings):
        if crossing.status != CrossingStatus.NONE:
            continue
        if crossing.overlap < settings.min_overlap:
            continue
        if settings.true_crossings_only and not crossing.true_crossing:
            continue
        if (
            project.effective_status(crossing.file_id_1).is_fixed
            and project.effective_status(crossing.file_id_2).is_fixed
        ):
            continue
        candidates.append(crossing_id)
    return candidates


def _reject_crossing(
    ctx: NavAdjustContext,
    crossing_id: int,
    reason: str,
    settings: AutoPickSettings,
    report: AutoPickReport,
) -> None:
    logger.info("Crossing %d rejected: %s", crossing_id, reason)
    report.rejected.append(crossing_id)
    report.messages.append(NavAdjustMessage.info(reason, crossing_id=crossing_id))
    if settings.skip_rejected:
        result = skip_crossing(ctx, crossing_id)
        report.messages.extend(result.messages)


def pick_crossing(
    ctx: NavAdjustContext,
    loader: SwathLoader,
    crossing_id: int,
    settings: AutoPickSettings,
    report: AutoPickReport,
) -> bool:
    """Correlate one crossing and add a tie if the result is acceptable."""
    project = ctx.project
    crossing = project.get_crossing(crossing_id)
    section_1 = project.get_section(crossing.file_id_1, crossing.section_1)
    section_2 = project.get_section(crossing.file_id_2, crossing.section_2)
    if not section_1.samples or not section_2.samples:
        _reject_crossing(ctx, crossing_id, "Section without samples", settings, report)
        return False

    try:
        soundings_1 = loader(crossing.file_id_1, crossing.section_1)
        soundings_2 = loader(crossing.file_id_2, crossing.section_2)
    except OSError as exc:
        logger.warning("Loading soundings for crossing %d failed: %s", crossing_id, exc)
        report.rejected.append(crossing_id)
        report.messages.append(
            NavAdjustMessage.warning(
                f"Loading soundings failed: {exc}", crossing_id=crossing_id
            )
        )
        return False

    scale = project.scale
    origin = _section_origin(section_1)
    set1 = PointSet.from_soundings(soundings_1, origin, scale)
    set2 = PointSet.from_soundings(soundings_2, origin, scale)
    box = overlap_box(set1, set2)
    if box is None:
        _reject_crossing(ctx, crossing_id, "Soundings do not overlap", settings, report)
        return False
    xmin, xmax, ymin, ymax = box
    centre = (0.5 * (xmin + xmax), 0.5 * (ymin + ymax))
    extent = overlap_extent(box)

    snav_1 = nearest_sample(section_1, centre, origin, scale)
    snav_2 = nearest_sample(section_2, centre, origin, scale)
    trial = section_2.samples[snav_2].offset_m(scale) - section_1.samples[
        snav_1
    ].offset_m(scale)
    zwidth = settings.search_zwidth(project.zoffsetwidth)

    result = compute_misfit(set1, set2, trial, zwidth, settings.misfit)
    if not is_acceptable(result, extent, settings):
        _reject_crossing(
            ctx,
            crossing_id,
            f"Correlation not accepted (valid={result.valid}, "
            f"sigma1={result.uncertainty.sigma1:.3f} m, extent={extent:.3f} m, "
            f"count={result.count})",
            settings,
            report,
        )
        return False

    added = add_tie(
        ctx,
        crossing_id,
        offset=result.offset,
        uncertainty=result.uncertainty,
        snav_1=snav_1,
        snav_2=snav_2,
        status=settings.tie_status,
    )
    report.messages.extend(added.messages)
    if not added:
        report.rejected.append(crossing_id)
        return False
    report.picked.append(crossing_id)
    return True


@operation
def autopick(
    ctx: NavAdjustContext,
    loader: SwathLoader,
    settings: AutoPickSettings | None = None,
    cancellation: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
) -> OperationResult:
    """Pick ties on every unanalyzed crossing.

    Args:
        ctx: Operation context
        loader: Swath loader returning the soundings of a section
        settings: Acceptance rules
        cancellation: Token checked between crossings
        on_progress: Optional progress callback

    Returns:
        Result whose value is the :class:`AutoPickReport`
    """
    settings = settings or AutoPickSettings()
    candidates = _candidate_crossings(ctx, settings)
    report = AutoPickReport()
    logger.info("Auto-picking %d crossings", len(candidates))

    for completed, crossing_id in enumerate(candidates):
        if cancellation and cancellation.cancelled:
            report.cancelled = True
            logger.info("Auto-pick cancelled after %d crossings", completed)
            break
        if on_progress:
            on_progress(
                message=f"Correlating crossing {crossing_id}",
                completed=completed,
                total=len(candidates),
            )
        report.attempted += 1
        pick_crossing(ctx, loader, crossing_id, settings, report)

    logger.info(
        "Auto-pick finished: %d picked, %d rejected of %d attempted",
        len(report.picked),
        len(report.rejected),
        report.attempted,
    )
    return OperationResult.ok(report, *report.messages)


def pick_global_tie(
    ctx: NavAdjustContext,
    loader: SwathLoader,
    grid_reader: ReferenceGridReader,
    file_id: int,
    section_id: int,
    settings: AutoPickSettings,
    report: AutoPickReport,
    reference_grid: str | None = None,
) -> bool:
    """Correlate one section with the reference surface and add a global tie."""
    project = ctx.project
    section = project.get_section(file_id, section_id)
    key = (file_id, section_id)

    def reject(message: NavAdjustMessage) -> bool:
        logger.info("Global tie on file %d section %d rejected: %s", *key, message.message)
        report.rejected.append(key)
        report.messages.append(message)
        return False

    try:
        soundings = loader(file_id, section_id)
    except OSError as exc:
        return reject(
            NavAdjustMessage.warning(
                f"Loading soundings failed: {exc}",
                file_id=file_id,
                section_id=section_id,
            )
        )
    valid = np.asarray(soundings.valid, dtype=bool)
    if not valid.any():
        return reject(
            NavAdjustMessage.info(
                "No valid soundings", file_id=file_id, section_id=section_id
            )
        )
    lon = np.asarray(soundings.lon)[valid]
    lat = np.asarray(soundings.lat)[valid]
    raster = grid_reader(
        (float(lon.min()), float(lon.max()), float(lat.min()), float(lat.max()))
    )
    if raster is None:
        return reject(
            NavAdjustMessage.info(
                "Reference surface does not cover the section",
                file_id=file_id,
                section_id=section_id,
            )
        )

    scale = project.scale
    origin = _section_origin(section)
    reference = PointSet.from_raster(raster, origin, scale)
    swath = PointSet.from_soundings(soundings, origin, scale)
    box = overlap_box(reference, swath)
    if box is None:
        return reject(
            NavAdjustMessage.info(
                "Soundings do not overlap the reference surface",
                file_id=file_id,
                section_id=section_id,
            )
        )
    xmin, xmax, ymin, ymax = box
    centre = (0.5 * (xmin + xmax), 0.5 * (ymin + ymax))
    extent = overlap_extent(box)

    snav = nearest_sample(section, centre, origin, scale)
    trial = section.samples[snav].offset_m(scale)
    zwidth = settings.search_zwidth(project.zoffsetwidth)
    result = compute_misfit(reference, swath, trial, zwidth, settings.misfit)
    if not is_acceptable(result, extent, settings):
        return reject(
            NavAdjustMessage.info(
                f"Correlation not accepted (valid={result.valid}, "
                f"sigma1={result.uncertainty.sigma1:.3f} m, extent={extent:.3f} m)",
                file_id=file_id,
                section_id=section_id,
            )
        )

    added = add_global_tie(
        ctx,
        file_id,
        section_id,
        snav=snav,
        offset=result.offset,
        uncertainty=result.uncertainty,
        status=settings.tie_status,
        reference_grid=reference_grid,
    )
    report.messages.extend(added.messages)
    if not added:
        report.rejected.append(key)
        return False
    report.picked.append(key)
    return True


@operation
def autopick_global_ties(
    ctx: NavAdjustContext,
    loader: SwathLoader,
    grid_reader: ReferenceGridReader,
    settings: AutoPickSettings | None = None,
    cancellation: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
    reference_grid: str | None = None,
) -> OperationResult:
    """Pick a global tie for every section that has none.

    Sections of fixed files are left alone. ``reference_grid`` names the
    reference surface on the new ties.

    Returns:
        Result whose value is the :class:`AutoPickReport`
    """
    settings = settings or AutoPickSettings()
    project = ctx.project
    candidates = [
        (file_id, section_id)
        for file_id, nav_file in enumerate(project.files)
        if not project.effective_status(file_id).is_fixed
        for section_id, section in enumerate(nav_file.sections)
        if section.global_tie is None and section.samples
    ]
    report = AutoPickReport()
    logger.info("Auto-picking global ties on %d sections", len(candidates))

    for completed, (file_id, section_id) in enumerate(candidates):
        if cancellation and cancellation.cancelled:
            report.cancelled = True
            logger.info("Global tie auto-pick cancelled after %d sections", completed)
            break
        if on_progress:
            on_progress(
                message=f"Correlating file {file_id} section {section_id}",
                completed=completed,
                total=len(candidates),
            )
        report.attempted += 1
        pick_global_tie(
            ctx,
            loader,
            grid_reader,
            file_id,
            section_id,
            settings,
            report,
            reference_grid,
        )

    logger.info(
        "Global tie auto-pick finished: %d picked, %d rejected of %d attempted",
        len(report.picked),
        len(report.rejected),
        report.attempted,
    )
    return OperationResult.ok(report, *report.messages)

