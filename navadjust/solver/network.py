# -*- coding: utf-8 -*-
"""Flattening of a project into solver unknowns and constraints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

import numpy as np

from navadjust.enums import CrossingStatus
from navadjust.errors import ProjectStructureError
from navadjust.solver.models import GlobalConstraint
from navadjust.solver.models import SectionUnknowns
from navadjust.solver.models import TieConstraint

if TYPE_CHECKING:
    from navadjust.project.models import Project
    from navadjust.project.models import TieBase

logger = logging.getLogger(__name__)


def _constraint_arrays(
    tie: TieBase,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    unc = tie.uncertainty
    return (
        np.array(tie.offset_m, dtype=np.float64),
        np.array(unc.axes, dtype=np.float64),
        np.array(unc.sigmas, dtype=np.float64),
        np.array(tie.status.axis_mask(), dtype=np.float64),
    )


@dataclass
class InversionNetwork:
    """Unknowns and constraints of one inversion run.

    A continuous section's first sample shares the unknown of the previous
    section's last sample, so the offset field has no jump there.

    Attributes:
        scale: ``(mtodeglon, mtodeglat)`` of the project
        sample_unknowns: ``(file_id, section_id, snav) -> unknown``
        times: Sample time per unknown (seconds)
        file_ids: File per unknown
        surveys: Survey per unknown
        fixed: Components held at zero per unknown, shape (n, 3)
        poor: Poor-navigation flag per unknown
        sections: Unknowns of every section
        sequences: Unknowns of every run of continuous sections, time order
        ties: Tie constraints of SET crossings
        global_ties: Global tie constraints
        num_surveys: Number of surveys in the project
    """

    scale: tuple[float, float]
    sample_unknowns: dict[tuple[int, int, int], int]
    times: np.ndarray
    file_ids: np.ndarray
    surveys: np.ndarray
    fixed: np.ndarray
    poor: np.ndarray
    sections: list[SectionUnknowns]
    sequences: list[np.ndarray]
    ties: list[TieConstraint]
    global_ties: list[GlobalConstraint]
    num_surveys: int

    @classmethod
    def from_project(cls, project: Project) -> InversionNetwork:
        sample_unknowns: dict[tuple[int, int, int], int] = {}
        times: list[float] = []
        file_ids: list[int] = []
        surveys: list[int] = []
        fixed: list[tuple[bool, bool, bool]] = []
        poor: list[bool] = []
        sections: list[SectionUnknowns] = []
        sequences: list[list[int]] = []

        for file_id, nav_file in enumerate(project.files):
            status = project.effective_status(file_id)
            previous_last: int | None = None
            for section_id, section in enumerate(nav_file.sections):
                continuous = section.continuity and previous_last is not None
                if not continuous:
                    sequences.append([])
                    sequence = sequences[-1]
                unknowns: list[int] = []
                for snav, sample in enumerate(section.samples):
                    if snav == 0 and continuous:
                        unknown = previous_last
                    else:
                        unknown = len(times)
                        times.append(sample.time_d)
                        file_ids.append(file_id)
                        surveys.append(nav_file.survey)
                        fixed.append(status.fixed_mask())
                        poor.append(status.is_poor)
                        sequence.append(unknown)
                    sample_unknowns[(file_id, section_id, snav)] = unknown
                    unknowns.append(unknown)
                if unknowns:
                    previous_last = unknowns[-1]
                    sections.append(
                        SectionUnknowns(
                            file_id=file_id,
                            section_id=section_id,
                            sequence=len(sequences) - 1,
                            unknowns=np.array(unknowns, dtype=np.int64),
                        )
                    )
                else:
                    previous_last = None

        def lookup(key: tuple[int, int, int], /, **context) -> int:
            try:
                return sample_unknowns[key]
            except KeyError:
                file_id, section_id, snav = key
                raise ProjectStructureError(
                    f"Tie references missing sample {snav} of file {file_id} "
                    f"section {section_id}",
                    **context,
                ) from None

        ties: list[TieConstraint] = []
        for crossing_id, crossing in enumerate(project.crossings):
            if crossing.status != CrossingStatus.SET:
                continue
            for tie_index, tie in enumerate(crossing.ties):
                offset, axes, sigmas, mask = _constraint_arrays(tie)
                ties.append(
                    TieConstraint(
                        crossing_id=crossing_id,
                        tie_index=tie_index,
                        unknown_1=lookup(
                            (crossing.file_id_1, crossing.section_1, tie.snav_1),
                            crossing_id=crossing_id,
                            tie_index=tie_index,
                        ),
                        unknown_2=lookup(
                            (crossing.file_id_2, crossing.section_2, tie.snav_2),
                            crossing_id=crossing_id,
                            tie_index=tie_index,
                        ),
                        offset=offset,
                        axes=axes,
                        sigmas=sigmas,
                        mask=mask,
                        fixed=tie.status.is_fixed,
                    )
                )

        global_ties: list[GlobalConstraint] = []
        for file_id, section_id, _, global_tie in project.iter_global_ties():
            offset, axes, sigmas, mask = _constraint_arrays(global_tie)
            global_ties.append(
                GlobalConstraint(
                    file_id=file_id,
                    section_id=section_id,
                    unknown=lookup(
                        (file_id, section_id, global_tie.snav),
                        file_id=file_id,
                        section_id=section_id,
                    ),
                    offset=offset,
                    axes=axes,
                    sigmas=sigmas,
                    mask=mask,
                    fixed=global_tie.status.is_fixed,
                )
            )

        network = cls(
            scale=project.scale,
            sample_unknowns=sample_unknowns,
            times=np.array(times, dtype=np.float64),
            file_ids=np.array(file_ids, dtype=np.int64),
            surveys=np.array(surveys, dtype=np.int64),
            fixed=np.array(fixed, dtype=bool).reshape(-1, 3),
            poor=np.array(poor, dtype=bool),
            sections=sections,
            sequences=[np.array(s, dtype=np.int64) for s in sequences],
            ties=ties,
            global_ties=global_ties,
            num_surveys=max(
                [project.num_surveys, 1] + [f.survey + 1 for f in project.files]
            ),
        )
        logger.info(
            "Inversion network: %d unknowns in %d sequences, %d ties, %d global ties",
            network.num_unknowns,
            len(network.sequences),
            len(ties),
            len(global_ties),
        )
        return network

    @property
    def num_unknowns(self) -> int:
        return len(self.times)

    def zeros(self) -> np.ndarray:
        return np.zeros((self.num_unknowns, 3), dtype=np.float64)

    def apply_fixed(self, offsets: np.ndarray) -> np.ndarray:
        """Copy of ``offsets`` with fixed components forced to zero."""
        result = np.array(offsets, dtype=np.float64, copy=True)
        result[self.fixed] = 0.0
        return result

    # -------------------------------------------------------------------------
    # Stacked constraint arrays
    # -------------------------------------------------------------------------

    @cached_property
    def tie_unknowns(self) -> tuple[np.ndarray, np.ndarray]:
        return (
            np.array([t.unknown_1 for t in self.ties], dtype=np.int64),
            np.array([t.unknown_2 for t in self.ties], dtype=np.int64),
        )

    @cached_property
    def global_unknowns(self) -> np.ndarray:
        return np.array([g.unknown for g in self.global_ties], dtype=np.int64)

    @cached_property
    def _tie_stack(self) -> tuple[np.ndarray, ...]:
        return _stack(self.ties)

    @cached_property
    def _global_stack(self) -> tuple[np.ndarray, ...]:
        return _stack(self.global_ties)

    def tie_residuals(self, offsets: np.ndarray) -> np.ndarray:
        """Observed minus solved offset per tie, masked by tie status."""
        if not self.ties:
            return np.zeros((0, 3))
        u1, u2 = self.tie_unknowns
        observed, _, _, mask = self._tie_stack
        return (observed - (offsets[u2] - offsets[u1])) * mask

    def global_residuals(self, offsets: np.ndarray) -> np.ndarray:
        """Observed minus solved offset per global tie, masked by tie status."""
        if not self.global_ties:
            return np.zeros((0, 3))
        observed, _, _, mask = self._global_stack
        return (observed - offsets[self.global_unknowns]) * mask

    def rms_misfit(self, offsets: np.ndarray) -> float:
        """RMS over all ties of the residual projected on the uncertainty axes.

        Each residual component along axis k is divided by sigma k, and the
        sum of squares is normalized by the number of ties and global ties.
        """
        count = len(self.ties) + len(self.global_ties)
        if count == 0:
            return 0.0
        total = 0.0
        if self.ties:
            _, axes, sigmas, _ = self._tie_stack
            projected = np.einsum("tkc,tc->tk", axes, self.tie_residuals(offsets))
            total += float(((projected / sigmas) ** 2).sum())
        if self.global_ties:
            _, axes, sigmas, _ = self._global_stack
            projected = np.einsum("tkc,tc->tk", axes, self.global_residuals(offsets))
            total += float(((projected / sigmas) ** 2).sum())
        return float(np.sqrt(total / count))


def _stack(
    constraints: list[TieConstraint] | list[GlobalConstraint],
) -> tuple[np.ndarray, ...]:
    if not constraints:
        return (np.zeros((0, 3)), np.zeros((0, 3, 3)), np.ones((0, 3)), np.zeros((0, 3)))
    return (
        np.array([c.offset for c in constraints]),
        np.array([c.axes for c in constraints]),
        np.array([c.sigmas for c in constraints]),
        np.array([c.mask for c in constraints]),
    )
