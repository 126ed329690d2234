# -*- coding: utf-8 -*-
"""Survey-level stages: global tie interpolation and block averaging.

Both stages move every sample of a survey together. The block-average
stage solves one rigid offset per survey from

- the mean tie residual between every pair of surveys joined by ties,
- a heavily weighted anchor row per survey holding global ties or fixed
  files,
- a zero-sum row over the non-poor surveys for each axis that no survey
  anchors.

The system is solved with ``scipy.sparse.linalg.lsqr``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import coo_matrix  # type: ignore[import-untyped]
from scipy.sparse.linalg import lsqr  # type: ignore[import-untyped]

from navadjust.solver.base import InversionStage
from navadjust.solver.models import StageOutcome

if TYPE_CHECKING:
    from navadjust.solver.network import InversionNetwork

logger = logging.getLogger(__name__)


class GlobalTieStage(InversionStage):
    """Spread global tie offsets over each survey by time interpolation.

    Within a survey, each component is interpolated linearly in time
    between the global ties constraining it and held constant beyond the
    first and last of them.
    """

    @property
    def name(self) -> str:
        return "global ties"

    def run(self, network: InversionNetwork, offsets: np.ndarray) -> StageOutcome:
        result = np.array(offsets, dtype=np.float64, copy=True)
        if not network.global_ties:
            return StageOutcome(offsets=network.apply_fixed(result))

        residuals = network.global_residuals(offsets)
        anchor_unknowns = network.global_unknowns
        anchor_surveys = network.surveys[anchor_unknowns]
        anchor_times = network.times[anchor_unknowns]
        masks = np.array([g.mask for g in network.global_ties]) > 0.0

        for survey in np.unique(anchor_surveys):
            members = np.nonzero(network.surveys == survey)[0]
            in_survey = anchor_surveys == survey
            for axis in range(3):
                active = in_survey & masks[:, axis]
                if not active.any():
                    continue
                order = np.argsort(anchor_times[active], kind="stable")
                t = anchor_times[active][order]
                v = residuals[active, axis][order]
                result[members, axis] += np.interp(network.times[members], t, v)
            logger.debug(
                "Interpolated %d global ties over survey %d (%d samples)",
                int(in_survey.sum()),
                survey,
                len(members),
            )
        return StageOutcome(offsets=network.apply_fixed(result))


class BlockAverageStage(InversionStage):
    """Solve one rigid offset per survey."""

    @property
    def name(self) -> str:
        return "block average"

    def run(self, network: InversionNetwork, offsets: np.ndarray) -> StageOutcome:
        settings = self.settings
        occupied = np.unique(network.surveys)
        column_of = {int(s): j for j, s in enumerate(occupied)}
        num_blocks = len(occupied)
        survey_offsets = np.zeros((network.num_surveys, 3))

        poor_surveys = {
            int(s) for s in occupied if network.poor[network.surveys == s].all()
        }
        gauge_surveys = [int(s) for s in occupied if int(s) not in poor_surveys]
        if not gauge_surveys:
            gauge_surveys = [int(s) for s in occupied]

        rows: list[int] = []
        cols: list[int] = []
        vals: list[float] = []
        rhs: list[float] = []

        def add_row(entries: list[tuple[int, float]], value: float) -> None:
            row = len(rhs)
            for col, coef in entries:
                rows.append(row)
                cols.append(col)
                vals.append(coef)
            rhs.append(value)

        tie_residuals = network.tie_residuals(offsets)
        global_residuals = network.global_residuals(offsets)
        num_pair_rows = 0
        num_anchor_rows = 0

        for axis in range(3):
            # Mean residual per survey pair
            pairs: dict[tuple[int, int], list[float]] = defaultdict(list)
            for tie, residual in zip(network.ties, tie_residuals, strict=True):
                if tie.mask[axis] <= 0.0:
                    continue
                s1 = int(network.surveys[tie.unknown_1])
                s2 = int(network.surveys[tie.unknown_2])
                if s1 == s2:
                    continue
                if s1 < s2:
                    pairs[(s1, s2)].append(residual[axis])
                else:
                    pairs[(s2, s1)].append(-residual[axis])
            for (s1, s2), values in sorted(pairs.items()):
                add_row(
                    [(3 * column_of[s1] + axis, -1.0), (3 * column_of[s2] + axis, 1.0)],
                    float(np.mean(values)),
                )
                num_pair_rows += 1

            # Anchors from global ties and fixed files
            targets: dict[int, list[float]] = defaultdict(list)
            for global_tie, residual in zip(
                network.global_ties, global_residuals, strict=True
            ):
                if global_tie.mask[axis] > 0.0:
                    targets[int(network.surveys[global_tie.unknown])].append(
                        residual[axis]
                    )
            fixed_unknowns = np.nonzero(network.fixed[:, axis])[0]
            fixed_files = np.unique(network.file_ids[fixed_unknowns])
            for file_id in fixed_files:
                survey = int(network.surveys[network.file_ids == file_id][0])
                targets[survey].append(0.0)
            weight = settings.block_anchor_weight
            for survey, values in sorted(targets.items()):
                add_row(
                    [(3 * column_of[survey] + axis, weight)],
                    weight * float(np.mean(values)),
                )
                num_anchor_rows += 1

            # Gauge: zero mean over non-poor surveys for unanchored axes
            if not targets:
                add_row([(3 * column_of[s] + axis, 1.0) for s in gauge_surveys], 0.0)

        matrix = coo_matrix(
            (vals, (rows, cols)), shape=(len(rhs), 3 * num_blocks)
        ).tocsr()
        solution, istop, itn = lsqr(
            matrix,
            np.array(rhs, dtype=np.float64),
            atol=settings.lsqr_atol,
            btol=settings.lsqr_btol,
            iter_lim=settings.lsqr_iter_lim,
        )[:3]
        blocks = solution.reshape(num_blocks, 3)
        for survey, column in column_of.items():
            survey_offsets[survey] = blocks[column]

        logger.info(
            "Block average: %d surveys, %d pair rows, %d anchor rows, "
            "lsqr istop=%d itn=%d",
            num_blocks,
            num_pair_rows,
            num_anchor_rows,
            istop,
            itn,
        )
        result = offsets + survey_offsets[network.surveys]
        return StageOutcome(
            offsets=network.apply_fixed(result),
            istop=int(istop),
            itn=int(itn),
            survey_offsets=survey_offsets,
        )
