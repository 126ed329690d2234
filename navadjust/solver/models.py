# -*- coding: utf-8 -*-
"""Data structures for the navigation inversion solver.

The solver works on plain numpy arrays: unknown ``u`` is one navigation
sample (shared by a continuous section boundary), and the running offsets
are an array of shape (num_unknowns, 3) holding east, north and vertical
offsets in metres.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from navadjust.constants import BLOCK_ANCHOR_WEIGHT
from navadjust.constants import CHUNK_CONTINUITY
from navadjust.constants import CHUNK_CONVERGENCE
from navadjust.constants import CHUNK_DAMPING
from navadjust.constants import CHUNK_MAX_ITERATIONS
from navadjust.constants import CHUNK_SECTIONS
from navadjust.constants import FIXED_FILE_WEIGHT
from navadjust.constants import FIXED_TIE_WEIGHT
from navadjust.constants import LSQR_ATOL
from navadjust.constants import LSQR_BTOL
from navadjust.constants import LSQR_ITER_LIM
from navadjust.constants import MIN_ANALYZED_CROSSINGS
from navadjust.constants import OFFSET_SANITY_LIMIT
from navadjust.constants import SMOOTHING_MIN_DT
from navadjust.constants import SMOOTHING_POOR_FACTOR
from navadjust.constants import SMOOTHING_Z_FACTOR

if TYPE_CHECKING:
    import numpy as np

    from navadjust.errors import NavAdjustMessage


class SolverSettings(BaseModel):
    """Tunables of the three-stage inversion."""

    model_config = ConfigDict(frozen=True)

    min_analyzed_crossings: int = Field(default=MIN_ANALYZED_CROSSINGS, ge=0)

    run_block_stage: bool = True
    run_chunk_stage: bool = True
    run_full_stage: bool = True

    block_anchor_weight: float = Field(default=BLOCK_ANCHOR_WEIGHT, gt=0.0)

    chunk_sections: int = Field(default=CHUNK_SECTIONS, ge=1)
    chunk_damping: float = Field(default=CHUNK_DAMPING, gt=0.0, le=1.0)
    chunk_continuity: float = Field(default=CHUNK_CONTINUITY, ge=0.0, lt=1.0)
    chunk_convergence: float = Field(default=CHUNK_CONVERGENCE, gt=0.0)
    chunk_max_iterations: int = Field(default=CHUNK_MAX_ITERATIONS, ge=1)

    fixed_file_weight: float = Field(default=FIXED_FILE_WEIGHT, gt=0.0)
    fixed_tie_weight: float = Field(default=FIXED_TIE_WEIGHT, gt=0.0)
    smoothing_z_factor: float = Field(default=SMOOTHING_Z_FACTOR, gt=0.0)
    smoothing_poor_factor: float = Field(default=SMOOTHING_POOR_FACTOR, gt=0.0)
    smoothing_min_dt: float = Field(default=SMOOTHING_MIN_DT, gt=0.0)

    lsqr_atol: float = Field(default=LSQR_ATOL, gt=0.0)
    lsqr_btol: float = Field(default=LSQR_BTOL, gt=0.0)
    lsqr_iter_lim: int = Field(default=LSQR_ITER_LIM, ge=1)

    offset_sanity_limit: float = Field(default=OFFSET_SANITY_LIMIT, gt=0.0)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TieConstraint:
    """A tie in solver form: ``x[unknown_2] - x[unknown_1] = offset``.

    ``axes`` holds the three uncertainty axes as rows; ``mask`` zeroes the
    east/north/up components the tie status does not constrain.
    """

    crossing_id: int
    tie_index: int
    unknown_1: int
    unknown_2: int
    offset: np.ndarray
    axes: np.ndarray
    sigmas: np.ndarray
    mask: np.ndarray
    fixed: bool


@dataclass(frozen=True)
class GlobalConstraint:
    """A global tie in solver form: ``x[unknown] = offset``."""

    file_id: int
    section_id: int
    unknown: int
    offset: np.ndarray
    axes: np.ndarray
    sigmas: np.ndarray
    mask: np.ndarray
    fixed: bool


@dataclass(frozen=True)
class SectionUnknowns:
    """The unknowns of one section, in time order.

    ``sequence`` identifies the run of continuous sections the section
    belongs to.
    """

    file_id: int
    section_id: int
    sequence: int
    unknowns: np.ndarray


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class StageOutcome:
    """Offsets produced by one stage plus its solver diagnostics."""

    offsets: np.ndarray
    istop: int | None = None
    itn: int | None = None
    iterations: int | None = None
    survey_offsets: np.ndarray | None = None


@dataclass(frozen=True)
class StageReport:
    """Convergence figures recorded after a stage.

    Attributes:
        name: Stage name
        misfit: RMS tie misfit after the stage
        solution_norm: Norm of the stage's own contribution
        total_norm: Norm of the running offsets after the stage
        istop: LSQR termination reason (None for non-LSQR stages)
        itn: LSQR iteration count (None for non-LSQR stages)
        iterations: Relaxation iterations (chunk stage only)
    """

    name: str
    misfit: float
    solution_norm: float
    total_norm: float
    istop: int | None = None
    itn: int | None = None
    iterations: int | None = None


@dataclass
class InversionReport:
    """Summary of one inversion run."""

    num_unknowns: int = 0
    num_ties: int = 0
    num_global_ties: int = 0
    initial_misfit: float = 0.0
    stages: list[StageReport] = field(default_factory=list)
    discarded_ties: list[tuple[int, int]] = field(default_factory=list)
    discarded_global_ties: list[tuple[int, int]] = field(default_factory=list)
    messages: list[NavAdjustMessage] = field(default_factory=list)

    @property
    def final_misfit(self) -> float:
        if not self.stages:
            return self.initial_misfit
        return self.stages[-1].misfit
