# -*- coding: utf-8 -*-
"""Navigation adjustment for swath sonar surveys.

A Python library for correcting the navigation of overlapping swath sonar
surveys from observed offsets ("ties") between overlapping sections.

Usage:
    from navadjust import NavAdjustContext, load_project
    from navadjust import add_tie, invert_navigation

    project = load_project(Path("survey.json"))
    ctx = NavAdjustContext(project, JsonProjectSerializer(Path("survey.json")))

    result = add_tie(ctx, crossing_id=3, offset=Vector3D(2.0, -1.0, 0.1),
                     uncertainty=UncertaintyEllipsoid.isotropic(1.0, 0.1))
    if not result:
        for message in result.messages:
            print(message)

    report = invert_navigation(ctx).value
    print(report.initial_misfit, report.final_misfit)
    ctx.flush()
"""

__version__ = "0.1.0"

# Constants
from navadjust.autopick import AutoPickReport
from navadjust.autopick import AutoPickSettings
from navadjust.autopick import autopick
from navadjust.autopick import autopick_global_ties
from navadjust.constants import JSON_ENCODING
from navadjust.constants import MAX_TIES_PER_CROSSING
from navadjust.constants import SIGMA_UNSET
from navadjust.constants import SNAV_NUM
from navadjust.crossings import find_crossings

# Enums
from navadjust.enums import CrossingStatus
from navadjust.enums import FileStatus
from navadjust.enums import GridStatus
from navadjust.enums import InversionStatus
from navadjust.enums import NavQuality
from navadjust.enums import Severity
from navadjust.enums import TieStatus
from navadjust.errors import GlobalTieError
from navadjust.errors import InversionPreconditionError
from navadjust.errors import NavAdjustException
from navadjust.errors import NavAdjustMessage
from navadjust.errors import OperationResult
from navadjust.errors import ProjectStructureError
from navadjust.errors import TieConsistencyError
from navadjust.errors import TieLimitError
from navadjust.geojson import convert_project_to_geojson
from navadjust.geojson import project_to_geojson
from navadjust.interface import CancellationToken
from navadjust.interface import NavAdjustContext
from navadjust.interface import ReferenceRaster
from navadjust.interface import Soundings
from navadjust.misfit import MisfitResult
from navadjust.misfit import MisfitSettings
from navadjust.misfit import PointSet
from navadjust.misfit import compute_misfit
from navadjust.misfit import misfit_xy
from navadjust.models import Vector3D
from navadjust.navigation import adjust_file_navigation
from navadjust.navigation import section_offsets_at
from navadjust.project import Crossing
from navadjust.project import GlobalTie
from navadjust.project import JsonProjectSerializer
from navadjust.project import NavFile
from navadjust.project import NavSample
from navadjust.project import Project
from navadjust.project import Section
from navadjust.project import Survey
from navadjust.project import Tie
from navadjust.project import UncertaintyEllipsoid
from navadjust.project import load_project
from navadjust.project import save_project
from navadjust.solver import InversionReport
from navadjust.solver import SolverSettings
from navadjust.solver import invert_navigation
from navadjust.ties import add_global_tie
from navadjust.ties import add_tie
from navadjust.ties import cycle_tie_status
from navadjust.ties import delete_global_tie
from navadjust.ties import delete_tie
from navadjust.ties import fix_tie
from navadjust.ties import modify_global_tie
from navadjust.ties import modify_tie
from navadjust.ties import set_file_status
from navadjust.ties import set_survey_status
from navadjust.ties import set_tie_status
from navadjust.ties import skip_crossing
from navadjust.ties import toggle_tie_xy
from navadjust.ties import toggle_tie_z
from navadjust.ties import unfix_tie
from navadjust.ties import unset_crossing
from navadjust.ties import zero_z_offsets
from navadjust.validation import check_counters
from navadjust.validation import check_tie_references
from navadjust.validation import has_enough_crossings
from navadjust.validation import validate_inversion

__all__ = [
    # Constants
    "JSON_ENCODING",
    "MAX_TIES_PER_CROSSING",
    "SIGMA_UNSET",
    "SNAV_NUM",
    # Auto-pick
    "AutoPickReport",
    "AutoPickSettings",
    # Context
    "CancellationToken",
    # Project Models
    "Crossing",
    # Enums
    "CrossingStatus",
    "FileStatus",
    "GlobalTie",
    # Errors
    "GlobalTieError",
    "GridStatus",
    "InversionPreconditionError",
    # Solver
    "InversionReport",
    "InversionStatus",
    "JsonProjectSerializer",
    "MisfitResult",
    # Misfit
    "MisfitSettings",
    "NavAdjustContext",
    "NavAdjustException",
    "NavAdjustMessage",
    "NavFile",
    "NavQuality",
    "NavSample",
    "OperationResult",
    "PointSet",
    "Project",
    "ProjectStructureError",
    "ReferenceRaster",
    "Section",
    "Severity",
    "SolverSettings",
    "Soundings",
    "Survey",
    "Tie",
    "TieConsistencyError",
    "TieLimitError",
    "TieStatus",
    "UncertaintyEllipsoid",
    "Vector3D",
    # Tie operations
    "add_global_tie",
    "add_tie",
    # Navigation output
    "adjust_file_navigation",
    "autopick",
    "autopick_global_ties",
    # Validation
    "check_counters",
    "check_tie_references",
    "compute_misfit",
    # Export
    "convert_project_to_geojson",
    "cycle_tie_status",
    "delete_global_tie",
    "delete_tie",
    "find_crossings",
    "fix_tie",
    "has_enough_crossings",
    "invert_navigation",
    # I/O
    "load_project",
    "misfit_xy",
    "modify_global_tie",
    "modify_tie",
    "project_to_geojson",
    "save_project",
    "section_offsets_at",
    "set_file_status",
    "set_survey_status",
    "set_tie_status",
    "skip_crossing",
    "toggle_tie_xy",
    "toggle_tie_z",
    "unfix_tie",
    "unset_crossing",
    "validate_inversion",
    "zero_z_offsets",
]
