# -*- coding: utf-8 -*-
"""Full per-sample inversion stage.

Solves for a correction to every sample offset with
``scipy.sparse.linalg.lsqr``. The rows are

- three rows per tie, the residual projected on each uncertainty axis and
  weighted by ``1 / sigma`` (``fixed_tie_weight`` times more for fixed
  ties),
- three rows per global tie, built the same way against one sample,
- one heavily weighted row per fixed component of a fixed file's sample,
- first and second difference smoothing rows on the total offset along
  every run of continuous samples, weighted ``10 ** smoothing / dt``.

Sequences no constraint reaches are left out of the system and receive
the correction interpolated in time from the solved samples of their
file, extrapolated linearly beyond the first and last of them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import coo_matrix  # type: ignore[import-untyped]
from scipy.sparse.linalg import lsqr  # type: ignore[import-untyped]

from navadjust.solver.base import InversionStage
from navadjust.solver.models import StageOutcome

if TYPE_CHECKING:
    from navadjust.solver.models import SolverSettings
    from navadjust.solver.network import InversionNetwork

logger = logging.getLogger(__name__)

_AXIS_EPS = 1.0e-12


def _interpolate_linear(
    times: np.ndarray, known_times: np.ndarray, values: np.ndarray
) -> np.ndarray:
    """Linear interpolation in time, extended linearly past both ends.

    ``known_times`` must be sorted. A single known value is held constant.
    """
    result = np.interp(times, known_times, values)
    if len(known_times) < 2:
        return result

    before = times < known_times[0]
    dt = known_times[1] - known_times[0]
    if before.any() and dt > 0.0:
        slope = (values[1] - values[0]) / dt
        result[before] = values[0] + slope * (times[before] - known_times[0])

    after = times > known_times[-1]
    dt = known_times[-1] - known_times[-2]
    if after.any() and dt > 0.0:
        slope = (values[-1] - values[-2]) / dt
        result[after] = values[-1] + slope * (times[after] - known_times[-1])
    return result


class _RowBuilder:
    """Accumulates sparse rows as COO triplets."""

    def __init__(self) -> None:
        self.rows: list[np.ndarray] = []
        self.cols: list[np.ndarray] = []
        self.vals: list[np.ndarray] = []
        self.rhs: list[np.ndarray] = []
        self.num_rows = 0

    def add(self, cols, vals, rhs: float) -> None:
        cols = np.asarray(cols, dtype=np.int64)
        self.rows.append(np.full(len(cols), self.num_rows, dtype=np.int64))
        self.cols.append(cols)
        self.vals.append(np.asarray(vals, dtype=np.float64))
        self.rhs.append(np.array([rhs], dtype=np.float64))
        self.num_rows += 1

    def add_block(self, cols: np.ndarray, vals: np.ndarray, rhs: np.ndarray) -> None:
        """Add ``len(rhs)`` rows; ``cols`` and ``vals`` have shape (rows, k)."""
        count = len(rhs)
        if count == 0:
            return
        row_ids = self.num_rows + np.arange(count, dtype=np.int64)
        self.rows.append(np.repeat(row_ids, cols.shape[1]))
        self.cols.append(cols.ravel())
        self.vals.append(vals.ravel())
        self.rhs.append(np.asarray(rhs, dtype=np.float64))
        self.num_rows += count

    def matrix(self, num_cols: int):
        return coo_matrix(
            (
                np.concatenate(self.vals),
                (np.concatenate(self.rows), np.concatenate(self.cols)),
            ),
            shape=(self.num_rows, num_cols),
        ).tocsr()

    def vector(self) -> np.ndarray:
        return np.concatenate(self.rhs)


class FullInversionStage(InversionStage):
    """Per-sample least squares with smoothing, per survey then globally."""

    def __init__(self, settings: SolverSettings, smoothing: float) -> None:
        super().__init__(settings)
        self.smoothing = smoothing

    @property
    def name(self) -> str:
        return "full inversion"

    def run(self, network: InversionNetwork, offsets: np.ndarray) -> StageOutcome:
        current = network.apply_fixed(offsets)
        surveys = np.unique(network.surveys)
        all_ties = list(range(len(network.ties)))
        all_globals = list(range(len(network.global_ties)))

        if len(surveys) > 1:
            u1, u2 = network.tie_unknowns
            tie_surveys_1 = network.surveys[u1] if len(u1) else np.zeros(0, dtype=int)
            tie_surveys_2 = network.surveys[u2] if len(u2) else np.zeros(0, dtype=int)
            global_surveys = network.surveys[network.global_unknowns]
            for survey in surveys:
                members = network.surveys == survey
                ties = [
                    i
                    for i in all_ties
                    if tie_surveys_1[i] == survey and tie_surveys_2[i] == survey
                ]
                global_ties = [i for i in all_globals if global_surveys[i] == survey]
                delta, istop, itn = self.solve(
                    network, current, members, ties, global_ties
                )
                current = network.apply_fixed(current + delta)
                logger.debug(
                    "Survey %d pass: %d ties, %d global ties, istop=%s itn=%s",
                    survey,
                    len(ties),
                    len(global_ties),
                    istop,
                    itn,
                )

        members = np.ones(network.num_unknowns, dtype=bool)
        delta, istop, itn = self.solve(
            network, current, members, all_ties, all_globals
        )
        current = network.apply_fixed(current + delta)
        logger.info("Full inversion global pass: istop=%s itn=%s", istop, itn)
        return StageOutcome(offsets=current, istop=istop, itn=itn)

    def _active_unknowns(
        self,
        network: InversionNetwork,
        members: np.ndarray,
        ties: list[int],
        global_ties: list[int],
    ) -> np.ndarray:
        """Member unknowns lying on a sequence reached by some constraint."""
        touched = np.zeros(network.num_unknowns, dtype=bool)
        for i in ties:
            touched[network.ties[i].unknown_1] = True
            touched[network.ties[i].unknown_2] = True
        for i in global_ties:
            touched[network.global_ties[i].unknown] = True
        touched |= network.fixed.any(axis=1)
        touched &= members

        active = np.zeros(network.num_unknowns, dtype=bool)
        for sequence in network.sequences:
            if len(sequence) and touched[sequence].any():
                active[sequence] = True
        return active & members

    def solve(
        self,
        network: InversionNetwork,
        offsets: np.ndarray,
        members: np.ndarray,
        ties: list[int],
        global_ties: list[int],
    ) -> tuple[np.ndarray, int | None, int | None]:
        """Solve one pass over the ``members`` unknowns.

        Returns:
            ``(delta, istop, itn)``; ``istop`` and ``itn`` are None when
            nothing was solved
        """
        settings = self.settings
        delta = np.zeros_like(offsets)
        active = self._active_unknowns(network, members, ties, global_ties)
        columns = np.nonzero(active)[0]
        if len(columns) == 0:
            return delta, None, None
        column_of = np.full(network.num_unknowns, -1, dtype=np.int64)
        column_of[columns] = np.arange(len(columns))

        builder = _RowBuilder()
        tie_residuals = network.tie_residuals(offsets)
        for i in ties:
            tie = network.ties[i]
            if tie.unknown_1 == tie.unknown_2:
                continue
            c1 = 3 * column_of[tie.unknown_1]
            c2 = 3 * column_of[tie.unknown_2]
            scale = settings.fixed_tie_weight if tie.fixed else 1.0
            for k in range(3):
                a = tie.axes[k] * tie.mask
                if np.abs(a).max() < _AXIS_EPS:
                    continue
                w = scale / tie.sigmas[k]
                builder.add(
                    [c2, c2 + 1, c2 + 2, c1, c1 + 1, c1 + 2],
                    np.concatenate((w * a, -w * a)),
                    w * float(a @ tie_residuals[i]),
                )

        global_residuals = network.global_residuals(offsets)
        for i in global_ties:
            global_tie = network.global_ties[i]
            c = 3 * column_of[global_tie.unknown]
            scale = settings.fixed_tie_weight if global_tie.fixed else 1.0
            for k in range(3):
                a = global_tie.axes[k] * global_tie.mask
                if np.abs(a).max() < _AXIS_EPS:
                    continue
                w = scale / global_tie.sigmas[k]
                builder.add(
                    [c, c + 1, c + 2],
                    w * a,
                    w * float(a @ global_residuals[i]),
                )

        weight = settings.fixed_file_weight
        fixed_u, fixed_axis = np.nonzero(network.fixed & active[:, None])
        if len(fixed_u):
            builder.add_block(
                (3 * column_of[fixed_u] + fixed_axis)[:, None],
                np.full((len(fixed_u), 1), weight),
                -weight * offsets[fixed_u, fixed_axis],
            )

        self._add_smoothing(builder, network, offsets, active, column_of)

        if builder.num_rows == 0:
            return delta, None, None
        solution, istop, itn = lsqr(
            builder.matrix(3 * len(columns)),
            builder.vector(),
            atol=settings.lsqr_atol,
            btol=settings.lsqr_btol,
            iter_lim=settings.lsqr_iter_lim,
        )[:3]
        delta[columns] = solution.reshape(-1, 3)
        self._interpolate_inactive(network, delta, members & ~active, active)
        return delta, int(istop), int(itn)

    def _add_smoothing(
        self,
        builder: _RowBuilder,
        network: InversionNetwork,
        offsets: np.ndarray,
        active: np.ndarray,
        column_of: np.ndarray,
    ) -> None:
        settings = self.settings
        base = 10.0**self.smoothing
        axis_factor = np.array([1.0, 1.0, settings.smoothing_z_factor])
        for sequence in network.sequences:
            if len(sequence) < 2 or not active[sequence[0]]:
                continue
            t = network.times[sequence]
            x = offsets[sequence]
            poor = network.poor[sequence]
            cols = 3 * column_of[sequence]

            # First differences
            dt = np.maximum(np.diff(t), settings.smoothing_min_dt)
            w = base / dt
            w = np.where(poor[1:] | poor[:-1], w * settings.smoothing_poor_factor, w)
            for axis in range(3):
                wa = w * axis_factor[axis]
                builder.add_block(
                    np.column_stack((cols[1:] + axis, cols[:-1] + axis)),
                    np.column_stack((wa, -wa)),
                    -wa * np.diff(x[:, axis]),
                )

            # Second differences
            if len(sequence) < 3:
                continue
            dt = np.maximum(0.5 * (t[2:] - t[:-2]), settings.smoothing_min_dt)
            w = base / dt
            near_poor = poor[:-2] | poor[1:-1] | poor[2:]
            w = np.where(near_poor, w * settings.smoothing_poor_factor, w)
            for axis in range(3):
                wa = w * axis_factor[axis]
                curvature = x[:-2, axis] - 2.0 * x[1:-1, axis] + x[2:, axis]
                builder.add_block(
                    np.column_stack(
                        (cols[:-2] + axis, cols[1:-1] + axis, cols[2:] + axis)
                    ),
                    np.column_stack((wa, -2.0 * wa, wa)),
                    -wa * curvature,
                )

    @staticmethod
    def _interpolate_inactive(
        network: InversionNetwork,
        delta: np.ndarray,
        missing: np.ndarray,
        active: np.ndarray,
    ) -> None:
        """Fill unsolved samples from solved samples of the same file.

        Gaps are interpolated linearly in time. Samples before the first or
        after the last solved sample are extrapolated along the line through
        the two nearest solved samples.
        """
        if not missing.any():
            return
        for file_id in np.unique(network.file_ids[missing]):
            in_file = network.file_ids == file_id
            known = np.nonzero(in_file & active)[0]
            targets = np.nonzero(in_file & missing)[0]
            if len(known) == 0:
                continue
            order = np.argsort(network.times[known], kind="stable")
            known = known[order]
            for axis in range(3):
                delta[targets, axis] = _interpolate_linear(
                    network.times[targets], network.times[known], delta[known, axis]
                )
