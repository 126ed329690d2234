# -*- coding: utf-8 -*-
"""JSON persistence for navigation adjustment projects.

Saving follows the pattern Model -> ``model_dump(mode="json")`` ->
``orjson`` bytes -> file; loading goes the other way with a single
``model_validate()`` call followed by :meth:`Project.recount`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import orjson

from navadjust.constants import JSON_ENCODING
from navadjust.project.models import Project

logger = logging.getLogger(__name__)


def project_to_bytes(project: Project, *, minify: bool = False) -> bytes:
    """Serialize a project to JSON bytes."""
    option = 0 if minify else orjson.OPT_INDENT_2
    return orjson.dumps(project.model_dump(mode="json"), option=option)


def project_from_bytes(data: bytes | str) -> Project:
    """Deserialize a project and rebuild its counters."""
    project = Project.model_validate(orjson.loads(data))
    project.recount()
    return project


def save_project(path: Path, project: Project, *, minify: bool = False) -> None:
    """Save a project as JSON.

    Args:
        path: Path to write JSON file
        project: Project to serialize
        minify: Write compact JSON instead of indented JSON
    """
    path.write_bytes(project_to_bytes(project, minify=minify))
    logger.info("Saved project %r to %s", project.name, path)


def load_project(path: Path) -> Project:
    """Load a project from JSON.

    Args:
        path: Path to JSON file

    Returns:
        Deserialized project with counters rebuilt
    """
    project = project_from_bytes(path.read_text(encoding=JSON_ENCODING))
    logger.info(
        "Loaded project %r from %s: %d files, %d crossings, %d ties",
        project.name,
        path,
        project.num_files,
        project.num_crossings,
        project.num_ties,
    )
    return project


class JsonProjectSerializer:
    """Project serializer writing a single JSON file.

    Satisfies :class:`navadjust.interface.ProjectSerializer`.
    """

    def __init__(self, path: Path, *, minify: bool = False) -> None:
        self.path = Path(path)
        self.minify = minify

    def save(self, project: Project) -> None:
        save_project(self.path, project, minify=self.minify)

    def load(self) -> Project:
        return load_project(self.path)
