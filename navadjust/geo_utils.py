# -*- coding: utf-8 -*-
"""Geographic helpers: local metric scale and local tangent-plane projection."""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from pyproj import Geod

_GEOD = Geod(ellps="WGS84")


@lru_cache(maxsize=1024)
def coordinate_scale(latitude: float) -> tuple[float, float]:
    """Degrees per metre in longitude and latitude at *latitude*.

    Returns:
        ``(mtodeglon, mtodeglat)``, so that ``dlon = dx * mtodeglon``.
    """
    lat = float(np.clip(latitude, -89.0, 89.0))
    _, _, m_per_deg_lon = _GEOD.inv(0.0, lat, 1.0, lat)
    _, _, m_per_deg_lat = _GEOD.inv(0.0, lat - 0.5, 0.0, lat + 0.5)
    return (1.0 / max(m_per_deg_lon, 1e-6), 1.0 / max(m_per_deg_lat, 1e-6))


def to_local(
    lon: np.ndarray,
    lat: np.ndarray,
    origin: tuple[float, float],
    scale: tuple[float, float],
) -> tuple[np.ndarray, np.ndarray]:
    """Project geographic coordinates to local east/north metres around *origin*."""
    mtodeglon, mtodeglat = scale
    x = (np.asarray(lon, dtype=np.float64) - origin[0]) / mtodeglon
    y = (np.asarray(lat, dtype=np.float64) - origin[1]) / mtodeglat
    return x, y


def to_geographic(
    x: np.ndarray,
    y: np.ndarray,
    origin: tuple[float, float],
    scale: tuple[float, float],
) -> tuple[np.ndarray, np.ndarray]:
    """Inverse of :func:`to_local`."""
    mtodeglon, mtodeglat = scale
    lon = origin[0] + np.asarray(x, dtype=np.float64) * mtodeglon
    lat = origin[1] + np.asarray(y, dtype=np.float64) * mtodeglat
    return lon, lat
