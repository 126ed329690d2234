# -*- coding: utf-8 -*-
"""Averaged-depth grids for the correlation search."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class GridGeometry:
    """A square-celled ``dim`` x ``dim`` grid; index ``[i, j]`` is (east, north)."""

    x0: float
    y0: float
    cell_size: float
    dim: int

    @classmethod
    def spanning(
        cls, extents: list[tuple[np.ndarray, np.ndarray]], dim: int
    ) -> GridGeometry:
        """Smallest centred grid holding every point of ``extents``."""
        xs = [x for x, _ in extents if len(x)]
        ys = [y for _, y in extents if len(y)]
        if not xs:
            return cls(x0=-0.5 * dim, y0=-0.5 * dim, cell_size=1.0, dim=dim)
        x_min = min(float(x.min()) for x in xs)
        x_max = max(float(x.max()) for x in xs)
        y_min = min(float(y.min()) for y in ys)
        y_max = max(float(y.max()) for y in ys)
        span = max(x_max - x_min, y_max - y_min)
        cell_size = span / (dim - 1) if span > 0.0 else 1.0
        x_center = 0.5 * (x_min + x_max)
        y_center = 0.5 * (y_min + y_max)
        return cls(
            x0=x_center - 0.5 * dim * cell_size,
            y0=y_center - 0.5 * dim * cell_size,
            cell_size=cell_size,
            dim=dim,
        )

    def cell_indices(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Truncated cell indices, clamped to the grid."""
        i = np.floor((x - self.x0) / self.cell_size).astype(np.int64)
        j = np.floor((y - self.y0) / self.cell_size).astype(np.int64)
        return np.clip(i, 0, self.dim - 1), np.clip(j, 0, self.dim - 1)


@dataclass(frozen=True)
class DepthGrid:
    """Per-cell mean depth and sample count."""

    geometry: GridGeometry
    mean: np.ndarray
    count: np.ndarray

    @classmethod
    def accumulate(
        cls, geometry: GridGeometry, x: np.ndarray, y: np.ndarray, z: np.ndarray
    ) -> DepthGrid:
        dim = geometry.dim
        i, j = geometry.cell_indices(x, y)
        flat = i * dim + j
        count = np.bincount(flat, minlength=dim * dim)
        total = np.bincount(flat, weights=z, minlength=dim * dim)
        mean = np.zeros(dim * dim, dtype=np.float64)
        occupied = count > 0
        mean[occupied] = total[occupied] / count[occupied]
        return cls(
            geometry=geometry,
            mean=mean.reshape(dim, dim),
            count=count.reshape(dim, dim),
        )

    @property
    def occupied(self) -> np.ndarray:
        return self.count > 0
