# -*- coding: utf-8 -*-
"""Navigation inversion driver.

One run goes through

    reset offsets -> global ties -> fixed files -> [block average]
    -> chunk relaxation -> full inversion -> write back

where the block-average stage only runs when samples belong to more than
one survey. The run is all or nothing: preconditions are checked before
the project is touched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from navadjust.enums import GridStatus
from navadjust.enums import InversionStatus
from navadjust.errors import NavAdjustMessage
from navadjust.errors import OperationResult
from navadjust.errors import operation
from navadjust.models import Vector3D
from navadjust.solver.block import BlockAverageStage
from navadjust.solver.block import GlobalTieStage
from navadjust.solver.chunk import ChunkRelaxationStage
from navadjust.solver.full import FullInversionStage
from navadjust.solver.models import InversionReport
from navadjust.solver.models import SolverSettings
from navadjust.solver.models import StageReport
from navadjust.solver.network import InversionNetwork
from navadjust.validation import validate_inversion

if TYPE_CHECKING:
    from navadjust.interface import NavAdjustContext
    from navadjust.interface import ProgressCallback
    from navadjust.project.models import Project
    from navadjust.project.models import TieBase
    from navadjust.solver.base import InversionStage

logger = logging.getLogger(__name__)


def build_stages(
    network: InversionNetwork, settings: SolverSettings, smoothing: float
) -> list[InversionStage]:
    stages: list[InversionStage] = [GlobalTieStage(settings)]
    if settings.run_block_stage and len(np.unique(network.surveys)) > 1:
        stages.append(BlockAverageStage(settings))
    if settings.run_chunk_stage:
        stages.append(ChunkRelaxationStage(settings))
    if settings.run_full_stage:
        stages.append(FullInversionStage(settings, smoothing))
    return stages


def run_stages(
    network: InversionNetwork,
    stages: list[InversionStage],
    report: InversionReport,
    on_progress: ProgressCallback | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Run the stages from zero offsets.

    Returns:
        ``(offsets, survey_offsets)`` in metres
    """
    offsets = network.zeros()
    survey_offsets = np.zeros((network.num_surveys, 3))
    report.initial_misfit = network.rms_misfit(offsets)

    for completed, stage in enumerate(stages, start=1):
        if on_progress:
            on_progress(
                message=f"Running {stage.name}",
                completed=completed - 1,
                total=len(stages),
            )
        outcome = stage.run(network, offsets)
        updated = network.apply_fixed(outcome.offsets)
        stage_report = StageReport(
            name=stage.name,
            misfit=network.rms_misfit(updated),
            solution_norm=float(np.linalg.norm(updated - offsets)),
            total_norm=float(np.linalg.norm(updated)),
            istop=outcome.istop,
            itn=outcome.itn,
            iterations=outcome.iterations,
        )
        report.stages.append(stage_report)
        if outcome.survey_offsets is not None:
            survey_offsets = survey_offsets + outcome.survey_offsets
        offsets = updated
        logger.info(
            "Stage %s: misfit %.6g, solution norm %.6g, total norm %.6g",
            stage_report.name,
            stage_report.misfit,
            stage_report.solution_norm,
            stage_report.total_norm,
        )
    if on_progress:
        on_progress(
            message="Inversion complete", completed=len(stages), total=len(stages)
        )
    return offsets, survey_offsets


def _store_solution(tie: TieBase, solved: np.ndarray, scale: tuple[float, float]) -> None:
    """Cache the solved offset of a tie and its residual decomposition."""
    mtodeglon, mtodeglat = scale
    tie.inversion_status = InversionStatus.CURRENT
    tie.inversion_offset_x_m = float(solved[0])
    tie.inversion_offset_y_m = float(solved[1])
    tie.inversion_offset_z_m = float(solved[2])
    tie.inversion_offset_x = float(solved[0]) * mtodeglon
    tie.inversion_offset_y = float(solved[1]) * mtodeglat

    residual = solved - np.array(tie.offset_m)
    tie.dx_m, tie.dy_m, tie.dz_m = (float(v) for v in residual)
    tie.sigma_m = float(np.linalg.norm(residual))
    unc = tie.uncertainty
    along = [
        abs(float(np.dot(axis, residual))) / sigma
        for axis, sigma in zip(unc.axes, unc.sigmas, strict=True)
    ]
    tie.dr1_m, tie.dr2_m, tie.dr3_m = along
    tie.rsigma_m = float(np.sqrt(sum(v * v for v in along)))


def write_back(
    project: Project,
    network: InversionNetwork,
    offsets: np.ndarray,
    survey_offsets: np.ndarray,
    settings: SolverSettings,
    report: InversionReport,
) -> None:
    """Copy the solution into samples, files and ties."""
    scale = network.scale
    for (file_id, section_id, snav), unknown in network.sample_unknowns.items():
        sample = project.files[file_id].sections[section_id].samples[snav]
        sample.set_offset_m(Vector3D(*(float(v) for v in offsets[unknown])), scale)

    for file_id, nav_file in enumerate(project.files):
        block = survey_offsets[nav_file.survey] * ~np.array(
            project.effective_status(file_id).fixed_mask()
        )
        nav_file.block_offset_x = float(block[0])
        nav_file.block_offset_y = float(block[1])
        nav_file.block_offset_z = float(block[2])

    limit = settings.offset_sanity_limit
    for constraint in network.ties:
        tie = project.crossings[constraint.crossing_id].ties[constraint.tie_index]
        solved = offsets[constraint.unknown_2] - offsets[constraint.unknown_1]
        if np.abs(solved).max() > limit:
            tie.clear_inversion(InversionStatus.OLD)
            report.discarded_ties.append((constraint.crossing_id, constraint.tie_index))
            report.messages.append(
                NavAdjustMessage.warning(
                    f"Solved offset beyond {limit:g} m discarded",
                    crossing_id=constraint.crossing_id,
                    tie_index=constraint.tie_index,
                )
            )
            logger.warning(
                "Discarding solved offset of tie %d on crossing %d (beyond %g m)",
                constraint.tie_index,
                constraint.crossing_id,
                limit,
            )
            continue
        _store_solution(tie, solved, scale)

    for constraint in network.global_ties:
        global_tie = project.files[constraint.file_id].sections[
            constraint.section_id
        ].global_tie
        solved = offsets[constraint.unknown]
        if np.abs(solved).max() > limit:
            global_tie.clear_inversion(InversionStatus.OLD)
            report.discarded_global_ties.append(
                (constraint.file_id, constraint.section_id)
            )
            report.messages.append(
                NavAdjustMessage.warning(
                    f"Solved offset beyond {limit:g} m discarded",
                    file_id=constraint.file_id,
                    section_id=constraint.section_id,
                )
            )
            logger.warning(
                "Discarding solved offset of global tie on file %d section %d",
                constraint.file_id,
                constraint.section_id,
            )
            continue
        _store_solution(global_tie, solved, scale)

    project.inversion_status = InversionStatus.CURRENT
    if project.grid_status == GridStatus.CURRENT:
        project.grid_status = GridStatus.OLD


@operation
def invert_navigation(
    ctx: NavAdjustContext,
    settings: SolverSettings | None = None,
    on_progress: ProgressCallback | None = None,
) -> OperationResult:
    """Solve the per-sample navigation offsets from all ties.

    Args:
        ctx: Operation context
        settings: Solver settings
        on_progress: Optional progress callback, called between stages

    Returns:
        Result whose value is the :class:`InversionReport`; on a failed
        precondition the project is left untouched and every problem is
        listed in the messages
    """
    settings = settings or SolverSettings()
    project = ctx.project
    validate_inversion(project, settings)

    network = InversionNetwork.from_project(project)
    report = InversionReport(
        num_unknowns=network.num_unknowns,
        num_ties=len(network.ties),
        num_global_ties=len(network.global_ties),
    )
    stages = build_stages(network, settings, project.smoothing)
    offsets, survey_offsets = run_stages(network, stages, report, on_progress)
    write_back(project, network, offsets, survey_offsets, settings, report)

    logger.info(
        "Inversion complete: %d unknowns, misfit %.6g -> %.6g, %d ties discarded",
        report.num_unknowns,
        report.initial_misfit,
        report.final_misfit,
        len(report.discarded_ties) + len(report.discarded_global_ties),
    )
    messages = list(report.messages)
    save_message = ctx.record_edit()
    if save_message is not None:
        messages.append(save_message)
    return OperationResult.ok(report, *messages)
