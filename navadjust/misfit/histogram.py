# -*- coding: utf-8 -*-
"""Histogram equalization of misfit values for colour mapping."""

from __future__ import annotations

import numpy as np


def equalization_intervals(values: np.ndarray, num_intervals: int) -> np.ndarray:
    """Interval boundaries splitting the nonzero ``values`` into equal counts.

    Boundary ``i`` is the sorted nonzero value at position
    ``i * (n - 1) // (num_intervals - 1)``. An input without nonzero values
    gives a table of zeros.
    """
    data = np.asarray(values, dtype=np.float64).ravel()
    data = np.sort(data[np.isfinite(data) & (data != 0.0)])
    if data.size == 0:
        return np.zeros(num_intervals, dtype=np.float64)
    n = data.size
    positions = (np.arange(num_intervals) * (n - 1)) // (num_intervals - 1)
    return data[positions]
