# -*- coding: utf-8 -*-
"""Tie lifecycle management.

Every operation here mutates the project held by a
:class:`~navadjust.interface.NavAdjustContext` and keeps the bookkeeping
in step:

- each sample's ``num_ties`` equals the number of ties and global ties
  pointing at it
- the project counters (ties, global ties, analyzed crossings) are adjusted
  incrementally
- the project inversion state drops from CURRENT to OLD

Operations return an :class:`~navadjust.errors.OperationResult` and never
raise package exceptions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from navadjust.constants import MAX_TIES_PER_CROSSING
from navadjust.enums import CrossingStatus
from navadjust.enums import FileStatus
from navadjust.enums import InversionStatus
from navadjust.enums import TieStatus
from navadjust.errors import GlobalTieError
from navadjust.errors import NavAdjustException
from navadjust.errors import NavAdjustMessage
from navadjust.errors import OperationResult
from navadjust.errors import ProjectStructureError
from navadjust.errors import TieConsistencyError
from navadjust.errors import TieLimitError
from navadjust.errors import operation
from navadjust.project.models import GlobalTie
from navadjust.project.models import Tie
from navadjust.project.models import UncertaintyEllipsoid

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from navadjust.interface import NavAdjustContext
    from navadjust.models import Vector3D
    from navadjust.project.models import Project
    from navadjust.project.models import Section
    from navadjust.project.models import TieBase

logger = logging.getLogger(__name__)


def _finish(
    ctx: NavAdjustContext, value: Any = None, *messages: NavAdjustMessage
) -> OperationResult:
    """Mark the inversion stale, record one edit and build the result."""
    ctx.project.mark_inversion_old()
    collected = list(messages)
    save_message = ctx.record_edit()
    if save_message is not None:
        collected.append(save_message)
    return OperationResult.ok(value, *collected)


def _free_sample(
    section: Section, used: set[int], requested: int | None, **context: int | None
) -> int:
    """Find a sample index not in ``used`` by a wrapping linear search.

    The search starts at ``requested`` (the middle sample when not given) and
    wraps around the section.
    """
    num_snav = section.num_snav
    if num_snav == 0:
        raise TieConsistencyError("Section has no navigation samples", **context)
    if requested is None:
        requested = num_snav // 2
    elif not 0 <= requested < num_snav:
        raise ProjectStructureError(
            f"Sample index {requested} outside 0..{num_snav - 1}", **context
        )
    for step in range(num_snav):
        candidate = (requested + step) % num_snav
        if candidate not in used:
            return candidate
    raise TieConsistencyError(
        f"All {num_snav} samples are already referenced by ties", **context
    )


def _mark_tie_modified(tie: TieBase) -> None:
    if tie.inversion_status == InversionStatus.CURRENT:
        tie.inversion_status = InversionStatus.OLD


# -----------------------------------------------------------------------------
# Ties
# -----------------------------------------------------------------------------


@operation
def add_tie(
    ctx: NavAdjustContext,
    crossing_id: int,
    offset: Vector3D | None = None,
    uncertainty: UncertaintyEllipsoid | None = None,
    snav_1: int | None = None,
    snav_2: int | None = None,
    status: TieStatus = TieStatus.XYZ,
) -> OperationResult:
    """Add a tie to a crossing.

    Args:
        ctx: Operation context
        crossing_id: Crossing to tie
        offset: Observed offset of section 2 relative to section 1 (metres);
            defaults to the current solved offset difference
        uncertainty: Uncertainty ellipsoid; defaults to the unset sentinel
        snav_1: Preferred sample in section 1 (the next free one if already used)
        snav_2: Preferred sample in section 2 (the next free one if already used)
        status: Initial tie status

    Returns:
        Result whose value is the index of the new tie
    """
    project = ctx.project
    crossing = project.get_crossing(crossing_id)
    if crossing.num_ties >= MAX_TIES_PER_CROSSING:
        raise TieLimitError(
            f"Crossing already holds the maximum of {MAX_TIES_PER_CROSSING} ties",
            crossing_id=crossing_id,
        )

    section_1 = project.get_section(crossing.file_id_1, crossing.section_1)
    section_2 = project.get_section(crossing.file_id_2, crossing.section_2)
    index_1 = _free_sample(
        section_1, crossing.used_snav_1(), snav_1, crossing_id=crossing_id
    )
    index_2 = _free_sample(
        section_2, crossing.used_snav_2(), snav_2, crossing_id=crossing_id
    )
    sample_1 = section_1.samples[index_1]
    sample_2 = section_2.samples[index_2]

    scale = project.scale
    if offset is None:
        offset = sample_2.offset_m(scale) - sample_1.offset_m(scale)

    tie = Tie(
        status=status,
        snav_1=index_1,
        snav_1_time_d=sample_1.time_d,
        snav_2=index_2,
        snav_2_time_d=sample_2.time_d,
        uncertainty=uncertainty or UncertaintyEllipsoid.unset(),
    )
    tie.set_offset(offset, scale)

    crossing.ties.append(tie)
    sample_1.num_ties += 1
    sample_2.num_ties += 1
    project.num_ties += 1
    project.set_crossing_status(crossing_id, CrossingStatus.SET)

    tie_index = crossing.num_ties - 1
    logger.info(
        "Added tie %d on crossing %d (samples %d/%d)",
        tie_index,
        crossing_id,
        index_1,
        index_2,
    )
    return _finish(ctx, tie_index)


def _remove_tie(project: Project, crossing_id: int, tie_index: int) -> None:
    crossing = project.get_crossing(crossing_id)
    tie = project.get_tie(crossing_id, tie_index)
    section_1 = project.get_section(crossing.file_id_1, crossing.section_1)
    section_2 = project.get_section(crossing.file_id_2, crossing.section_2)
    for sample in (section_1.samples[tie.snav_1], section_2.samples[tie.snav_2]):
        if sample.num_ties <= 0:
            raise TieConsistencyError(
                "Sample reference count already zero",
                crossing_id=crossing_id,
                tie_index=tie_index,
            )
    section_1.samples[tie.snav_1].num_ties -= 1
    section_2.samples[tie.snav_2].num_ties -= 1
    del crossing.ties[tie_index]
    project.num_ties -= 1


def _check_target_status(status: CrossingStatus) -> None:
    if status == CrossingStatus.SET:
        raise NavAdjustException("A crossing without ties cannot be SET")


@operation
def delete_tie(
    ctx: NavAdjustContext,
    crossing_id: int,
    tie_index: int,
    target_status: CrossingStatus = CrossingStatus.NONE,
) -> OperationResult:
    """Delete a tie, compacting the crossing's tie list.

    Args:
        ctx: Operation context
        crossing_id: Crossing holding the tie
        tie_index: Index of the tie to delete
        target_status: Crossing status (NONE or SKIP) once no ties remain
    """
    _check_target_status(target_status)
    project = ctx.project
    _remove_tie(project, crossing_id, tie_index)
    if project.crossings[crossing_id].num_ties == 0:
        project.set_crossing_status(crossing_id, target_status)
    logger.info("Deleted tie %d from crossing %d", tie_index, crossing_id)
    return _finish(ctx)


def _clear_crossing(
    ctx: NavAdjustContext, crossing_id: int, target_status: CrossingStatus
) -> OperationResult:
    project = ctx.project
    crossing = project.get_crossing(crossing_id)
    removed = crossing.num_ties
    for tie_index in reversed(range(removed)):
        _remove_tie(project, crossing_id, tie_index)
    project.set_crossing_status(crossing_id, target_status)
    logger.info(
        "Crossing %d set to %s (%d ties removed)",
        crossing_id,
        target_status.value,
        removed,
    )
    return _finish(ctx, removed)


@operation
def skip_crossing(ctx: NavAdjustContext, crossing_id: int) -> OperationResult:
    """Delete every tie of a crossing and mark it SKIP."""
    return _clear_crossing(ctx, crossing_id, CrossingStatus.SKIP)


@operation
def unset_crossing(ctx: NavAdjustContext, crossing_id: int) -> OperationResult:
    """Delete every tie of a crossing and mark it NONE."""
    return _clear_crossing(ctx, crossing_id, CrossingStatus.NONE)


@operation
def modify_tie(
    ctx: NavAdjustContext,
    crossing_id: int,
    tie_index: int,
    *,
    offset: Vector3D | None = None,
    uncertainty: UncertaintyEllipsoid | None = None,
    status: TieStatus | None = None,
) -> OperationResult:
    """Replace the offset, uncertainty or status of an existing tie."""
    project = ctx.project
    tie = project.get_tie(crossing_id, tie_index)
    if offset is not None:
        tie.set_offset(offset, project.scale)
    if uncertainty is not None:
        tie.uncertainty = uncertainty
    if status is not None:
        tie.status = status
    _mark_tie_modified(tie)
    return _finish(ctx, tie_index)


def _transition_tie(
    ctx: NavAdjustContext,
    crossing_id: int,
    tie_index: int,
    transition: Callable[[TieStatus], TieStatus],
) -> OperationResult:
    tie = ctx.project.get_tie(crossing_id, tie_index)
    new_status = transition(tie.status)
    if new_status == tie.status:
        return OperationResult.ok(new_status)
    logger.debug(
        "Tie %d on crossing %d: %s -> %s",
        tie_index,
        crossing_id,
        tie.status.value,
        new_status.value,
    )
    tie.status = new_status
    _mark_tie_modified(tie)
    return _finish(ctx, new_status)


@operation
def set_tie_status(
    ctx: NavAdjustContext, crossing_id: int, tie_index: int, status: TieStatus
) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, lambda _: status)


@operation
def toggle_tie_xy(
    ctx: NavAdjustContext, crossing_id: int, tie_index: int
) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, TieStatus.toggle_xy)


@operation
def toggle_tie_z(
    ctx: NavAdjustContext, crossing_id: int, tie_index: int
) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, TieStatus.toggle_z)


@operation
def cycle_tie_status(
    ctx: NavAdjustContext, crossing_id: int, tie_index: int
) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, TieStatus.cycle)


@operation
def fix_tie(ctx: NavAdjustContext, crossing_id: int, tie_index: int) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, TieStatus.fix)


@operation
def unfix_tie(
    ctx: NavAdjustContext, crossing_id: int, tie_index: int
) -> OperationResult:
    return _transition_tie(ctx, crossing_id, tie_index, TieStatus.unfix)


@operation
def zero_z_offsets(ctx: NavAdjustContext) -> OperationResult:
    """Set the vertical offset of every tie to zero.

    Horizontal offsets, uncertainties and statuses are kept. The whole
    pass counts as one edit.

    Returns:
        Result whose value is the number of ties changed
    """
    changed = 0
    for _, _, _, tie in ctx.project.iter_ties():
        if tie.offset_z_m == 0.0:
            continue
        tie.offset_z_m = 0.0
        _mark_tie_modified(tie)
        changed += 1
    if not changed:
        return OperationResult.ok(0)
    logger.info("Zeroed the vertical offset of %d ties", changed)
    return _finish(ctx, changed)


# -----------------------------------------------------------------------------
# Global ties
# -----------------------------------------------------------------------------


@operation
def add_global_tie(
    ctx: NavAdjustContext,
    file_id: int,
    section_id: int,
    snav: int | None = None,
    offset: Vector3D | None = None,
    uncertainty: UncertaintyEllipsoid | None = None,
    status: TieStatus = TieStatus.XYZ,
    reference_grid: str | None = None,
) -> OperationResult:
    """Anchor one sample of a section to a reference surface.

    Args:
        ctx: Operation context
        file_id: File holding the section
        section_id: Section to anchor
        snav: Sample index; defaults to the middle sample
        offset: Offset registering the section onto the reference (metres);
            defaults to the sample's current solved offset
        uncertainty: Uncertainty ellipsoid; defaults to the unset sentinel
        status: Initial tie status
        reference_grid: Name of the reference surface
    """
    project = ctx.project
    section = project.get_section(file_id, section_id)
    if section.global_tie is not None:
        raise GlobalTieError(
            "Section already holds a global tie",
            file_id=file_id,
            section_id=section_id,
        )
    index = _free_sample(
        section, set(), snav, file_id=file_id, section_id=section_id
    )
    sample = section.samples[index]

    scale = project.scale
    if offset is None:
        offset = sample.offset_m(scale)

    global_tie = GlobalTie(
        status=status,
        snav=index,
        snav_time_d=sample.time_d,
        uncertainty=uncertainty or UncertaintyEllipsoid.unset(),
        reference_grid=reference_grid,
    )
    global_tie.set_offset(offset, scale)

    section.global_tie = global_tie
    sample.num_ties += 1
    project.num_global_ties += 1
    logger.info(
        "Added global tie on file %d section %d (sample %d)",
        file_id,
        section_id,
        index,
    )
    return _finish(ctx, index)


@operation
def delete_global_tie(
    ctx: NavAdjustContext, file_id: int, section_id: int
) -> OperationResult:
    project = ctx.project
    section = project.get_section(file_id, section_id)
    global_tie = section.global_tie
    if global_tie is None:
        raise GlobalTieError(
            "Section holds no global tie", file_id=file_id, section_id=section_id
        )
    sample = section.samples[global_tie.snav]
    if sample.num_ties <= 0:
        raise TieConsistencyError(
            "Sample reference count already zero",
            file_id=file_id,
            section_id=section_id,
        )
    sample.num_ties -= 1
    section.global_tie = None
    project.num_global_ties -= 1
    logger.info("Deleted global tie on file %d section %d", file_id, section_id)
    return _finish(ctx)


@operation
def modify_global_tie(
    ctx: NavAdjustContext,
    file_id: int,
    section_id: int,
    *,
    offset: Vector3D | None = None,
    uncertainty: UncertaintyEllipsoid | None = None,
    status: TieStatus | None = None,
) -> OperationResult:
    project = ctx.project
    section = project.get_section(file_id, section_id)
    global_tie = section.global_tie
    if global_tie is None:
        raise GlobalTieError(
            "Section holds no global tie", file_id=file_id, section_id=section_id
        )
    if offset is not None:
        global_tie.set_offset(offset, project.scale)
    if uncertainty is not None:
        global_tie.uncertainty = uncertainty
    if status is not None:
        global_tie.status = status
    _mark_tie_modified(global_tie)
    return _finish(ctx)


# -----------------------------------------------------------------------------
# File and survey status
# -----------------------------------------------------------------------------


def _skip_fixed_crossings(project: Project) -> int:
    """Mark unanalyzed crossings between two fixed files as SKIP."""
    skipped = 0
    for crossing_id, crossing in enumerate(project.crossings):
        if crossing.status != CrossingStatus.NONE:
            continue
        if (
            project.effective_status(crossing.file_id_1).is_fixed
            and project.effective_status(crossing.file_id_2).is_fixed
        ):
            project.set_crossing_status(crossing_id, CrossingStatus.SKIP)
            skipped += 1
    return skipped


@operation
def set_file_status(
    ctx: NavAdjustContext, file_id: int, status: FileStatus
) -> OperationResult:
    """Set the navigation quality of a file.

    Fixing a file skips every unanalyzed crossing it shares with another
    fixed file. The result value is the number of crossings skipped.
    """
    project = ctx.project
    project.get_file(file_id).status = status
    skipped = _skip_fixed_crossings(project) if status.is_fixed else 0
    logger.info(
        "File %d status set to %s (%d crossings skipped)",
        file_id,
        status.value,
        skipped,
    )
    return _finish(ctx, skipped)


@operation
def set_survey_status(
    ctx: NavAdjustContext, survey_id: int, status: FileStatus
) -> OperationResult:
    """Set the navigation quality of a survey (block).

    Applies to every file of the survey whose own status is NORMAL.
    """
    project = ctx.project
    if not 0 <= survey_id < project.num_surveys:
        raise ProjectStructureError(f"No survey with id {survey_id}")
    project.surveys[survey_id].status = status
    skipped = _skip_fixed_crossings(project) if status.is_fixed else 0
    logger.info(
        "Survey %d status set to %s (%d crossings skipped)",
        survey_id,
        status.value,
        skipped,
    )
    return _finish(ctx, skipped)
