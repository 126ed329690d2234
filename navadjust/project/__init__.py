# -*- coding: utf-8 -*-
"""Project data model and JSON persistence."""

from navadjust.project.models import Crossing
from navadjust.project.models import GlobalTie
from navadjust.project.models import NavFile
from navadjust.project.models import NavSample
from navadjust.project.models import Project
from navadjust.project.models import Section
from navadjust.project.models import Survey
from navadjust.project.models import Tie
from navadjust.project.models import TieBase
from navadjust.project.models import UncertaintyEllipsoid
from navadjust.project.store import JsonProjectSerializer
from navadjust.project.store import load_project
from navadjust.project.store import save_project

__all__ = [
    "Crossing",
    "GlobalTie",
    "JsonProjectSerializer",
    "NavFile",
    "NavSample",
    "Project",
    "Section",
    "Survey",
    "Tie",
    "TieBase",
    "UncertaintyEllipsoid",
    "load_project",
    "save_project",
]
