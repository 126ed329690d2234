# -*- coding: utf-8 -*-
"""Collaborator contracts and the explicit operation context.

The core never reads swath files, reference grids or project files itself.
It calls the collaborators described here, all of them in-process and
synchronous:

1. A swath loader returns the soundings of one section
2. A reference-grid reader returns an elevation raster for a bounding box
3. A project serializer persists the whole project

Every public operation takes a :class:`NavAdjustContext` instead of
reaching for module-level state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import NamedTuple
from typing import Protocol

from navadjust.errors import NavAdjustMessage

if TYPE_CHECKING:
    import numpy as np

    from navadjust.project.models import Project

logger = logging.getLogger(__name__)


class Soundings(NamedTuple):
    """Soundings of one section in geographic coordinates.

    ``depth`` is positive down in metres; ``valid`` flags usable beams.
    """

    lon: np.ndarray
    lat: np.ndarray
    depth: np.ndarray
    valid: np.ndarray


class ReferenceRaster(NamedTuple):
    """A regular elevation raster covering ``bounds``.

    ``values`` has shape (rows, columns) with row 0 at ``lat_min``; NaN
    marks cells without data. Values are depths, positive down.
    """

    bounds: tuple[float, float, float, float]
    values: np.ndarray


class SwathLoader(Protocol):
    """Protocol for loading the soundings of a section."""

    def __call__(self, file_id: int, section_id: int) -> Soundings:
        """Return the soundings of section ``section_id`` of file ``file_id``."""
        ...


class ReferenceGridReader(Protocol):
    """Protocol for reading a reference surface."""

    def __call__(
        self, bounds: tuple[float, float, float, float]
    ) -> ReferenceRaster | None:
        """Return the raster covering (lon_min, lon_max, lat_min, lat_max)."""
        ...


class ProjectSerializer(Protocol):
    """Protocol for persisting a project."""

    def save(self, project: Project) -> None:
        """Write the whole project to storage."""
        ...


class ProgressCallback(Protocol):
    """Protocol for progress callbacks."""

    def __call__(
        self,
        message: str | None = None,
        completed: int | None = None,
        total: int | None = None,
    ) -> None:
        """Report progress."""
        ...


class CancellationToken:
    """Token for checking if a batch operation should stop.

    Checked only between crossings, never inside the solver.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True


class NavAdjustContext:
    """Explicit context passed to every public operation.

    Owns the project and the write-behind save policy: every mutating
    operation records one edit, and once ``save_interval`` edits have
    accumulated the project is handed to the serializer.

    Example:
        ctx = NavAdjustContext(project, JsonProjectSerializer(path))
        add_tie(ctx, crossing_id=3)
        ctx.flush()
    """

    def __init__(
        self,
        project: Project,
        serializer: ProjectSerializer | None = None,
        save_interval: int | None = None,
    ) -> None:
        self.project = project
        self.serializer = serializer
        self.save_interval = max(1, save_interval or project.save_interval)
        self.pending_edits = 0

    def record_edit(self, count: int = 1) -> NavAdjustMessage | None:
        """Count edits and save once the interval is reached.

        Returns:
            A warning if the save failed, otherwise None
        """
        self.pending_edits += count
        if self.pending_edits >= self.save_interval:
            return self.flush()
        return None

    def flush(self) -> NavAdjustMessage | None:
        """Save now if a serializer is attached.

        Returns:
            A warning if the save failed, otherwise None
        """
        if self.serializer is None:
            self.pending_edits = 0
            return None
        try:
            self.serializer.save(self.project)
        except OSError as exc:
            logger.exception("Saving project %r failed", self.project.name)
            return NavAdjustMessage.warning(
                f"Project save failed, {self.pending_edits} edits pending: {exc}"
            )
        logger.debug("Flushed %d pending edits", self.pending_edits)
        self.pending_edits = 0
        return None
