# -*- coding: utf-8 -*-
"""GeoJSON export for navigation adjustment projects.

Every section becomes a ``LineString`` through its representative samples,
either at the raw positions or corrected by the solved offsets. Ties and
global ties become ``Point`` features at the sample they constrain,
carrying the observed offset and, when an inversion has run, the solved
offset and residuals.

GeoJSON output uses WGS84 coordinates (longitude, latitude). Section
lines are coloured by survey following the simplestyle spec.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

import orjson
from geojson import Feature
from geojson import FeatureCollection
from geojson import LineString
from geojson import Point

from navadjust.constants import GEOJSON_COORDINATE_PRECISION
from navadjust.constants import JSON_ENCODING
from navadjust.enums import InversionStatus

if TYPE_CHECKING:
    from pathlib import Path

    from navadjust.project.models import NavSample
    from navadjust.project.models import Project
    from navadjust.project.models import TieBase

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Survey colour palette (simplestyle spec)
# -----------------------------------------------------------------------------

#: Distinct colours assigned to each survey so that tracks of different
#: blocks can be told apart in viewers supporting the simplestyle spec.
SURVEY_COLORS: list[str] = [
    "#1f77b4",  # blue
    "#ff7f0e",  # orange
    "#2ca02c",  # green
    "#d62728",  # red
    "#9467bd",  # purple
    "#8c564b",  # brown
    "#e377c2",  # pink
    "#7f7f7f",  # grey
    "#bcbd22",  # olive
    "#17becf",  # cyan
]


def _position(sample: NavSample, adjusted: bool) -> tuple[float, float]:
    lon, lat = sample.lon, sample.lat
    if adjusted:
        lon += sample.lon_offset
        lat += sample.lat_offset
    return (
        round(lon, GEOJSON_COORDINATE_PRECISION),
        round(lat, GEOJSON_COORDINATE_PRECISION),
    )


def _tie_properties(tie: TieBase) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "status": tie.status.value,
        "offset_x_m": round(tie.offset_x_m, 3),
        "offset_y_m": round(tie.offset_y_m, 3),
        "offset_z_m": round(tie.offset_z_m, 3),
        "sigma": [round(s, 3) for s in tie.uncertainty.sigmas],
        "inversion_status": tie.inversion_status.value,
    }
    if tie.inversion_status == InversionStatus.CURRENT:
        properties.update(
            {
                "inversion_offset_x_m": round(tie.inversion_offset_x_m, 3),
                "inversion_offset_y_m": round(tie.inversion_offset_y_m, 3),
                "inversion_offset_z_m": round(tie.inversion_offset_z_m, 3),
                "residual_m": round(tie.sigma_m, 3),
                "residual_sigma": round(tie.rsigma_m, 3),
            }
        )
    return properties


def section_features(project: Project, adjusted: bool = True) -> list[Feature]:
    """One LineString per section with at least two samples."""
    features = []
    for file_id, nav_file in enumerate(project.files):
        color = SURVEY_COLORS[nav_file.survey % len(SURVEY_COLORS)]
        for section_id, section in enumerate(nav_file.sections):
            if section.num_snav < 2:
                continue
            features.append(
                Feature(
                    geometry=LineString(
                        [_position(s, adjusted) for s in section.samples]
                    ),
                    properties={
                        "type": "section",
                        "file_id": file_id,
                        "file": nav_file.name or nav_file.path,
                        "section_id": section_id,
                        "survey": nav_file.survey,
                        "status": project.effective_status(file_id).value,
                        "num_ties": sum(s.num_ties for s in section.samples),
                        "stroke": color,
                        "stroke-width": 2,
                        "stroke-opacity": 1,
                    },
                )
            )
    return features


def tie_features(project: Project, adjusted: bool = True) -> list[Feature]:
    """One Point per tie (at its section 1 sample) and per global tie."""
    features = []
    for crossing_id, crossing, tie_index, tie in project.iter_ties():
        sample = project.files[crossing.file_id_1].sections[crossing.section_1].samples[
            tie.snav_1
        ]
        properties = {
            "type": "tie",
            "crossing_id": crossing_id,
            "tie_index": tie_index,
            "file_id_1": crossing.file_id_1,
            "section_1": crossing.section_1,
            "snav_1": tie.snav_1,
            "file_id_2": crossing.file_id_2,
            "section_2": crossing.section_2,
            "snav_2": tie.snav_2,
        }
        properties.update(_tie_properties(tie))
        features.append(
            Feature(geometry=Point(_position(sample, adjusted)), properties=properties)
        )

    for file_id, section_id, section, global_tie in project.iter_global_ties():
        sample = section.samples[global_tie.snav]
        properties = {
            "type": "global_tie",
            "file_id": file_id,
            "section_id": section_id,
            "snav": global_tie.snav,
            "reference_grid": global_tie.reference_grid,
            "marker-color": "#d62728",
        }
        properties.update(_tie_properties(global_tie))
        features.append(
            Feature(geometry=Point(_position(sample, adjusted)), properties=properties)
        )
    return features


def project_to_geojson(
    project: Project, adjusted: bool = True, include_ties: bool = True
) -> FeatureCollection:
    """Convert a project to GeoJSON.

    Args:
        project: Project to export
        adjusted: Place samples at their corrected positions
        include_ties: Include Point features for ties and global ties

    Returns:
        GeoJSON FeatureCollection
    """
    features = section_features(project, adjusted)
    if include_ties:
        features.extend(tie_features(project, adjusted))
    logger.debug("Exported %d features from project %r", len(features), project.name)
    return FeatureCollection(
        features,
        properties={
            "name": project.name,
            "adjusted": adjusted,
            "inversion_status": project.inversion_status.value,
        },
    )


def convert_project_to_geojson(
    project: Project,
    output_path: Path | None = None,
    adjusted: bool = True,
    include_ties: bool = True,
    minify: bool = False,
) -> str:
    """Serialize a project as GeoJSON.

    Args:
        project: Project to export
        output_path: Optional output path (returns string if None)
        adjusted: Place samples at their corrected positions
        include_ties: Include Point features for ties and global ties
        minify: Omit indentation for compact output

    Returns:
        GeoJSON string
    """
    geojson = project_to_geojson(project, adjusted=adjusted, include_ties=include_ties)

    opts = 0 if minify else orjson.OPT_INDENT_2
    json_str = orjson.dumps(geojson, option=opts).decode(JSON_ENCODING)

    if output_path:
        output_path.write_text(json_str, encoding=JSON_ENCODING)

    return json_str
