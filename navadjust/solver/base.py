# -*- coding: utf-8 -*-
"""Abstract base class for inversion stages.

To implement a new stage:

1. Subclass ``InversionStage``.
2. Implement the ``run`` method.
3. Optionally override ``name`` for logging / reports.

A stage receives the :class:`InversionNetwork` and the running offsets and
returns new running offsets. Components held fixed by a file's status must
come back as zero.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

    from navadjust.solver.models import SolverSettings
    from navadjust.solver.models import StageOutcome
    from navadjust.solver.network import InversionNetwork


class InversionStage(ABC):
    """Abstract base class for one step of the navigation inversion.

    Subclasses must implement :meth:`run`. The contract is:

    * Input: the network and an (num_unknowns, 3) array of running offsets.
    * Output: a :class:`StageOutcome` holding the updated offsets; the input
      array is not modified.
    """

    def __init__(self, settings: SolverSettings) -> None:
        self.settings = settings

    @property
    def name(self) -> str:
        """Human-readable name of the stage (for logging / reports)."""
        return self.__class__.__name__

    @abstractmethod
    def run(self, network: InversionNetwork, offsets: np.ndarray) -> StageOutcome:
        """Improve the running offsets.

        Args:
            network: Unknowns and constraints of the project.
            offsets: Running offsets, shape (num_unknowns, 3), metres.

        Returns:
            The stage outcome with the new running offsets.
        """
        ...
