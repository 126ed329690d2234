# -*- coding: utf-8 -*-
"""Inputs, settings and results of the misfit correlation engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import NamedTuple

import numpy as np
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from navadjust.constants import MISFIT_AXIS_COSINE
from navadjust.constants import MISFIT_DENSITY_RELAXATION
from navadjust.constants import MISFIT_GRID_DIM
from navadjust.constants import MISFIT_MIN_DENSITY
from navadjust.constants import MISFIT_NUM_INTERVALS
from navadjust.constants import MISFIT_NZ
from navadjust.constants import MISFIT_UNCERTAINTY_FACTOR
from navadjust.geo_utils import to_local

if TYPE_CHECKING:
    from navadjust.interface import ReferenceRaster
    from navadjust.interface import Soundings
    from navadjust.models import Vector3D
    from navadjust.project.models import UncertaintyEllipsoid


class MisfitSettings(BaseModel):
    """Tunables of the correlation search."""

    model_config = ConfigDict(frozen=True)

    grid_dim: int = Field(default=MISFIT_GRID_DIM, ge=3)
    nz: int = Field(default=MISFIT_NZ, ge=1)
    min_density: float = Field(default=MISFIT_MIN_DENSITY, ge=0)
    density_relaxation: float = Field(default=MISFIT_DENSITY_RELAXATION, gt=1.0)
    uncertainty_factor: float = Field(default=MISFIT_UNCERTAINTY_FACTOR, ge=1.0)
    axis_cosine: float = Field(default=MISFIT_AXIS_COSINE, gt=0.0, lt=1.0)
    num_intervals: int = Field(default=MISFIT_NUM_INTERVALS, ge=2)

    @property
    def volume_dim(self) -> int:
        """Lateral size of the misfit volume."""
        return self.grid_dim // 2 + 1


@dataclass(frozen=True)
class PointSet:
    """Soundings in local east/north metres with depth positive down."""

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    valid: np.ndarray

    @classmethod
    def from_arrays(cls, x, y, z, valid=None) -> PointSet:
        x = np.asarray(x, dtype=np.float64).ravel()
        y = np.asarray(y, dtype=np.float64).ravel()
        z = np.asarray(z, dtype=np.float64).ravel()
        if valid is None:
            valid = np.ones(x.shape, dtype=bool)
        valid = np.asarray(valid, dtype=bool).ravel()
        if not x.shape == y.shape == z.shape == valid.shape:
            raise ValueError("Point set arrays must have the same length")
        return cls(x=x, y=y, z=z, valid=valid & np.isfinite(z))

    @classmethod
    def from_soundings(
        cls,
        soundings: Soundings,
        origin: tuple[float, float],
        scale: tuple[float, float],
    ) -> PointSet:
        """Project geographic soundings into local metres around ``origin``."""
        x, y = to_local(soundings.lon, soundings.lat, origin, scale)
        return cls.from_arrays(x, y, soundings.depth, soundings.valid)

    @classmethod
    def from_raster(
        cls,
        raster: ReferenceRaster,
        origin: tuple[float, float],
        scale: tuple[float, float],
    ) -> PointSet:
        """Turn every raster cell centre into a point; NaN cells are invalid."""
        values = np.asarray(raster.values, dtype=np.float64)
        rows, cols = values.shape
        lon_min, lon_max, lat_min, lat_max = raster.bounds
        dlon = (lon_max - lon_min) / cols
        dlat = (lat_max - lat_min) / rows
        lon = lon_min + (np.arange(cols) + 0.5) * dlon
        lat = lat_min + (np.arange(rows) + 0.5) * dlat
        lon_grid, lat_grid = np.meshgrid(lon, lat)
        x, y = to_local(lon_grid, lat_grid, origin, scale)
        return cls.from_arrays(x, y, values, np.isfinite(values))

    @property
    def num_valid(self) -> int:
        return int(np.count_nonzero(self.valid))

    def valid_points(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.x[self.valid], self.y[self.valid], self.z[self.valid]


class XYMinimum(NamedTuple):
    """Density-qualified minimum of one z slice of the misfit volume."""

    offset: Vector3D
    misfit: float
    count: int
    valid: bool


@dataclass
class MisfitResult:
    """Outcome of one correlation search.

    Attributes:
        offset: Best (dx, dy, dz) registering set 2 onto set 1 (metres)
        count: Overlap-cell count supporting the best offset
        misfit: Misfit value at the best offset
        uncertainty: Principal axes and magnitudes around the minimum
        volume: Misfit volume, shape (nx, ny, nz); zero where nothing overlaps
        counts: Overlap-cell count per lateral shift, shape (nx, ny)
        intervals: Histogram-equalization interval table
        threshold: Density threshold actually used
        relaxed: Whether the threshold had to be relaxed
        valid: False when no cell passed even the relaxed threshold
        trial_offset: Trial offset the search was centred on
        cell_size: Lateral cell size (metres)
        z_candidates: Vertical offsets of the volume slices
        xy_minimum: 2-D minimum at the slice nearest the trial dz
    """

    offset: Vector3D
    count: int
    misfit: float
    uncertainty: UncertaintyEllipsoid
    volume: np.ndarray
    counts: np.ndarray
    intervals: np.ndarray
    threshold: float
    relaxed: bool
    valid: bool
    trial_offset: Vector3D
    cell_size: float
    z_candidates: np.ndarray
    xy_minimum: XYMinimum | None = None

    @property
    def z_step(self) -> float:
        if len(self.z_candidates) < 2:
            return 0.0
        return float(self.z_candidates[1] - self.z_candidates[0])

    @property
    def volume_dim(self) -> int:
        return self.counts.shape[0]

    def shift_offsets(self) -> np.ndarray:
        """Lateral offsets of the volume cells along one axis, relative to trial."""
        half = self.volume_dim // 2
        return (np.arange(self.volume_dim) - half) * self.cell_size

    def accepted_mask(self, threshold: float | None = None) -> np.ndarray:
        """Lateral shifts whose overlap count exceeds ``threshold``."""
        if threshold is None:
            threshold = self.threshold
        return self.counts > threshold

    def num_accepted(self, threshold: float | None = None) -> int:
        """Number of volume cells accepted as candidates at ``threshold``."""
        return int(np.count_nonzero(self.accepted_mask(threshold))) * len(
            self.z_candidates
        )
