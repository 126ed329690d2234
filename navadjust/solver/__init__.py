# -*- coding: utf-8 -*-
"""Navigation inversion solver.

Usage::

    from navadjust.solver import SolverSettings, invert_navigation

    result = invert_navigation(ctx, SolverSettings(chunk_max_iterations=50))
    if result:
        for stage in result.value.stages:
            print(stage.name, stage.misfit)

Stages, in order:

- :class:`GlobalTieStage` -- per-survey time interpolation of global ties
- :class:`BlockAverageStage` -- one rigid offset per survey (several
  surveys only)
- :class:`ChunkRelaxationStage` -- iterative distribution of tie
  residuals over chunks of continuous sections
- :class:`FullInversionStage` -- per-sample least squares with smoothing

To create a custom stage, subclass :class:`InversionStage` and implement
the :meth:`~InversionStage.run` method.
"""

from navadjust.solver.base import InversionStage
from navadjust.solver.block import BlockAverageStage
from navadjust.solver.block import GlobalTieStage
from navadjust.solver.chunk import DISTRIBUTION_RULES
from navadjust.solver.chunk import ChunkRelaxationStage
from navadjust.solver.full import FullInversionStage
from navadjust.solver.inversion import invert_navigation
from navadjust.solver.models import InversionReport
from navadjust.solver.models import SolverSettings
from navadjust.solver.models import StageReport
from navadjust.solver.network import InversionNetwork

__all__ = [
    "DISTRIBUTION_RULES",
    "BlockAverageStage",
    "ChunkRelaxationStage",
    "FullInversionStage",
    "GlobalTieStage",
    "InversionNetwork",
    "InversionReport",
    "InversionStage",
    "SolverSettings",
    "StageReport",
    "invert_navigation",
]
