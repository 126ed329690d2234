# -*- coding: utf-8 -*-
"""Misfit correlation engine."""

from navadjust.misfit.engine import compute_misfit
from navadjust.misfit.engine import estimate_uncertainty
from navadjust.misfit.engine import misfit_xy
from navadjust.misfit.histogram import equalization_intervals
from navadjust.misfit.models import MisfitResult
from navadjust.misfit.models import MisfitSettings
from navadjust.misfit.models import PointSet
from navadjust.misfit.models import XYMinimum

__all__ = [
    "MisfitResult",
    "MisfitSettings",
    "PointSet",
    "XYMinimum",
    "compute_misfit",
    "equalization_intervals",
    "estimate_uncertainty",
    "misfit_xy",
]
