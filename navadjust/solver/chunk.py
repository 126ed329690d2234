# -*- coding: utf-8 -*-
"""Chunk relaxation stage.

Runs of continuous sections are cut into chunks of up to
``chunk_sections`` sections. Each iteration hands every tie residual to
the chunks at its two ends according to :data:`DISTRIBUTION_RULES`,
averages the contributions per chunk, fills chunks without any by time
interpolation within the file, damps the corrections, blends them with
continuous neighbours and applies them. Iteration stops when the RMS tie
misfit improves by less than the convergence fraction, when it gets
worse (that step is undone) or at the iteration cap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from navadjust.enums import NavQuality
from navadjust.solver.base import InversionStage
from navadjust.solver.models import StageOutcome

if TYPE_CHECKING:
    from navadjust.solver.network import InversionNetwork

logger = logging.getLogger(__name__)

#: Share of a tie residual ``r`` taken by each end, keyed by
#: (quality of end 1, quality of end 2). End 1 moves by ``-f1 * r`` and
#: end 2 by ``+f2 * r``.
DISTRIBUTION_RULES: dict[tuple[NavQuality, NavQuality], tuple[float, float]] = {
    (NavQuality.GOOD, NavQuality.GOOD): (0.5, 0.5),
    (NavQuality.GOOD, NavQuality.POOR): (0.0, 1.0),
    (NavQuality.GOOD, NavQuality.FIXED): (1.0, 0.0),
    (NavQuality.POOR, NavQuality.GOOD): (1.0, 0.0),
    (NavQuality.POOR, NavQuality.POOR): (0.5, 0.5),
    (NavQuality.POOR, NavQuality.FIXED): (1.0, 0.0),
    (NavQuality.FIXED, NavQuality.GOOD): (0.0, 1.0),
    (NavQuality.FIXED, NavQuality.POOR): (0.0, 1.0),
    (NavQuality.FIXED, NavQuality.FIXED): (0.0, 0.0),
}


@dataclass(frozen=True)
class Chunk:
    """Consecutive continuous sections of one file treated as a unit."""

    file_id: int
    unknowns: np.ndarray
    mid_time: float
    previous: int | None
    quality: tuple[NavQuality, NavQuality, NavQuality]


def build_chunks(
    network: InversionNetwork, chunk_sections: int
) -> tuple[list[Chunk], np.ndarray]:
    """Partition the unknowns into chunks.

    Returns:
        The chunks and the chunk index of every unknown
    """
    chunks: list[Chunk] = []
    chunk_of = np.full(network.num_unknowns, -1, dtype=np.int64)

    group: list[np.ndarray] = []
    group_sequence = -1
    group_file = -1

    def close_group() -> None:
        if not group:
            return
        members = np.unique(np.concatenate(group))
        members = members[chunk_of[members] < 0]
        if len(members) == 0:
            return
        previous = None
        if chunks and chunks[-1].file_id == group_file and continuous_group:
            previous = len(chunks) - 1
        first = int(members[0])
        poor = bool(network.poor[first])
        quality = tuple(
            NavQuality.FIXED
            if network.fixed[first, axis]
            else (NavQuality.POOR if poor else NavQuality.GOOD)
            for axis in range(3)
        )
        t = network.times[members]
        chunk_of[members] = len(chunks)
        chunks.append(
            Chunk(
                file_id=group_file,
                unknowns=members,
                mid_time=0.5 * float(t.min() + t.max()),
                previous=previous,
                quality=quality,
            )
        )

    continuous_group = False
    for section in network.sections:
        starts_new = (
            section.sequence != group_sequence or len(group) >= chunk_sections
        )
        if starts_new:
            close_group()
            continuous_group = section.sequence == group_sequence
            group = []
            group_sequence = section.sequence
            group_file = section.file_id
        group.append(section.unknowns)
    close_group()
    return chunks, chunk_of


class ChunkRelaxationStage(InversionStage):
    """Iteratively distribute tie residuals over chunks."""

    @property
    def name(self) -> str:
        return "chunk relaxation"

    def corrections(
        self,
        network: InversionNetwork,
        chunks: list[Chunk],
        chunk_of: np.ndarray,
        offsets: np.ndarray,
    ) -> np.ndarray:
        """One relaxation step: the correction of every chunk, shape (chunks, 3)."""
        num_chunks = len(chunks)
        total = np.zeros((num_chunks, 3))
        count = np.zeros((num_chunks, 3))

        for tie, residual in zip(
            network.ties, network.tie_residuals(offsets), strict=True
        ):
            c1 = int(chunk_of[tie.unknown_1])
            c2 = int(chunk_of[tie.unknown_2])
            if c1 == c2:
                continue
            for axis in range(3):
                if tie.mask[axis] <= 0.0:
                    continue
                f1, f2 = DISTRIBUTION_RULES[
                    (chunks[c1].quality[axis], chunks[c2].quality[axis])
                ]
                if f1 > 0.0:
                    total[c1, axis] -= f1 * residual[axis]
                    count[c1, axis] += 1
                if f2 > 0.0:
                    total[c2, axis] += f2 * residual[axis]
                    count[c2, axis] += 1

        for global_tie, residual in zip(
            network.global_ties, network.global_residuals(offsets), strict=True
        ):
            c = int(chunk_of[global_tie.unknown])
            for axis in range(3):
                if global_tie.mask[axis] <= 0.0:
                    continue
                if chunks[c].quality[axis] == NavQuality.FIXED:
                    continue
                total[c, axis] += residual[axis]
                count[c, axis] += 1

        correction = np.zeros((num_chunks, 3))
        has = count > 0
        correction[has] = total[has] / count[has]

        # Fill chunks without contributions from chunks of the same file
        file_ids = np.array([c.file_id for c in chunks])
        mid_times = np.array([c.mid_time for c in chunks])
        movable = np.array(
            [[q != NavQuality.FIXED for q in c.quality] for c in chunks]
        ).reshape(-1, 3)
        for file_id in np.unique(file_ids):
            in_file = file_ids == file_id
            for axis in range(3):
                known = in_file & has[:, axis]
                missing = in_file & ~has[:, axis] & movable[:, axis]
                if not known.any() or not missing.any():
                    continue
                order = np.argsort(mid_times[known], kind="stable")
                correction[missing, axis] = np.interp(
                    mid_times[missing],
                    mid_times[known][order],
                    correction[known, axis][order],
                )

        correction *= self.settings.chunk_damping

        # Blend with continuous neighbours
        blend = self.settings.chunk_continuity
        if blend > 0.0:
            neighbour_sum = np.zeros_like(correction)
            neighbour_count = np.zeros(num_chunks)
            for index, chunk in enumerate(chunks):
                if chunk.previous is not None:
                    neighbour_sum[index] += correction[chunk.previous]
                    neighbour_count[index] += 1
                    neighbour_sum[chunk.previous] += correction[index]
                    neighbour_count[chunk.previous] += 1
            linked = neighbour_count > 0
            correction[linked] = (1.0 - blend) * correction[linked] + blend * (
                neighbour_sum[linked] / neighbour_count[linked, None]
            )

        correction[~movable] = 0.0
        return correction

    def run(self, network: InversionNetwork, offsets: np.ndarray) -> StageOutcome:
        settings = self.settings
        chunks, chunk_of = build_chunks(network, settings.chunk_sections)
        current = network.apply_fixed(offsets)
        if not chunks:
            return StageOutcome(offsets=current, iterations=0)

        misfit = network.rms_misfit(current)
        logger.info(
            "Chunk relaxation: %d chunks, initial misfit %.6g", len(chunks), misfit
        )
        iterations = 0
        for iteration in range(1, settings.chunk_max_iterations + 1):
            iterations = iteration
            if misfit <= 0.0:
                break
            correction = self.corrections(network, chunks, chunk_of, current)
            trial = network.apply_fixed(current + correction[chunk_of])
            trial_misfit = network.rms_misfit(trial)
            logger.debug(
                "Chunk iteration %d: misfit %.6g -> %.6g",
                iteration,
                misfit,
                trial_misfit,
            )
            if trial_misfit > misfit:
                logger.debug("Chunk relaxation diverging, step reverted")
                break
            improvement = (misfit - trial_misfit) / misfit
            current = trial
            misfit = trial_misfit
            if improvement < settings.chunk_convergence:
                break

        logger.info(
            "Chunk relaxation finished after %d iterations, misfit %.6g",
            iterations,
            misfit,
        )
        return StageOutcome(offsets=current, iterations=iterations)
