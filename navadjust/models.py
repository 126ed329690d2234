# -*- coding: utf-8 -*-
"""Core value types shared by the project model, the misfit engine and
the inversion solver."""

from __future__ import annotations

from typing import NamedTuple


class Vector3D(NamedTuple):
    """An offset (east, north, up) in metres."""

    x: float
    y: float
    z: float

    def __sub__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)


ZERO = Vector3D(0.0, 0.0, 0.0)
