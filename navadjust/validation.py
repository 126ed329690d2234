# -*- coding: utf-8 -*-
"""Validation utilities for navigation adjustment projects.

This module provides the inversion preconditions and consistency checks
for the bookkeeping the tie operations maintain incrementally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from navadjust.enums import CrossingStatus
from navadjust.errors import InversionPreconditionError
from navadjust.errors import NavAdjustMessage

if TYPE_CHECKING:
    from navadjust.project.models import Project
    from navadjust.project.models import UncertaintyEllipsoid
    from navadjust.solver.models import SolverSettings


def is_invertible_uncertainty(uncertainty: UncertaintyEllipsoid) -> bool:
    """True if every sigma is strictly positive and the sentinel is not used.

    Args:
        uncertainty: Uncertainty ellipsoid of a tie or global tie

    Returns:
        True if the tie can enter the inversion
    """
    return uncertainty.is_positive and not uncertainty.is_unset


def has_enough_crossings(project: Project, settings: SolverSettings) -> bool:
    """True once every true crossing or enough crossings have been analyzed."""
    return (
        project.num_truecrossings_analyzed == project.num_truecrossings
        or project.num_crossings_analyzed >= settings.min_analyzed_crossings
    )


def inversion_problems(
    project: Project, settings: SolverSettings
) -> list[NavAdjustMessage]:
    """List every reason the project cannot be inverted.

    Args:
        project: Project to check
        settings: Solver settings (minimum analyzed crossings)

    Returns:
        One error message per problem; empty if the inversion may run
    """
    problems: list[NavAdjustMessage] = []
    if not has_enough_crossings(project, settings):
        problems.append(
            NavAdjustMessage.error(
                f"{project.num_crossings_analyzed} crossings analyzed and "
                f"{project.num_truecrossings_analyzed} of "
                f"{project.num_truecrossings} true crossings analyzed; "
                f"analyze every true crossing or at least "
                f"{settings.min_analyzed_crossings} crossings"
            )
        )

    for crossing_id, crossing, tie_index, tie in project.iter_ties():
        if crossing.status != CrossingStatus.SET:
            continue
        unc = tie.uncertainty
        if not is_invertible_uncertainty(unc):
            problems.append(
                NavAdjustMessage.error(
                    "Tie uncertainty is unset or not strictly positive "
                    f"(sigma {unc.sigma1:.3f}/{unc.sigma2:.3f}/{unc.sigma3:.3f})",
                    crossing_id=crossing_id,
                    tie_index=tie_index,
                )
            )

    for file_id, section_id, _, global_tie in project.iter_global_ties():
        unc = global_tie.uncertainty
        if not is_invertible_uncertainty(unc):
            problems.append(
                NavAdjustMessage.error(
                    "Global tie uncertainty is unset or not strictly positive "
                    f"(sigma {unc.sigma1:.3f}/{unc.sigma2:.3f}/{unc.sigma3:.3f})",
                    file_id=file_id,
                    section_id=section_id,
                )
            )
    return problems


def validate_inversion(project: Project, settings: SolverSettings) -> None:
    """Raise if the project cannot be inverted.

    Raises:
        InversionPreconditionError: Listing every offending crossing, tie
            and global tie
    """
    problems = inversion_problems(project, settings)
    if problems:
        raise InversionPreconditionError(
            f"Inversion aborted: {len(problems)} problem(s) found", problems
        )


def check_tie_references(project: Project) -> list[NavAdjustMessage]:
    """Compare every sample's tie count with the ties pointing at it.

    Returns:
        One error message per section whose counts disagree
    """
    expected: dict[tuple[int, int], list[int]] = {}
    for file_id, nav_file in enumerate(project.files):
        for section_id, section in enumerate(nav_file.sections):
            expected[(file_id, section_id)] = [0] * section.num_snav

    for _, crossing, _, tie in project.iter_ties():
        expected[(crossing.file_id_1, crossing.section_1)][tie.snav_1] += 1
        expected[(crossing.file_id_2, crossing.section_2)][tie.snav_2] += 1
    for file_id, section_id, _, global_tie in project.iter_global_ties():
        expected[(file_id, section_id)][global_tie.snav] += 1

    problems: list[NavAdjustMessage] = []
    for (file_id, section_id), counts in expected.items():
        section = project.files[file_id].sections[section_id]
        actual = [s.num_ties for s in section.samples]
        if actual != counts:
            problems.append(
                NavAdjustMessage.error(
                    f"Sample tie counts {actual} do not match ties {counts}",
                    file_id=file_id,
                    section_id=section_id,
                )
            )
    return problems


def check_counters(project: Project) -> list[NavAdjustMessage]:
    """Compare the project counters with the crossings and ties."""
    analyzed = [c for c in project.crossings if c.status != CrossingStatus.NONE]
    expected = {
        "num_ties": sum(c.num_ties for c in project.crossings),
        "num_global_ties": sum(1 for _ in project.iter_global_ties()),
        "num_crossings_analyzed": len(analyzed),
        "num_goodcrossings": sum(1 for c in project.crossings if c.is_good),
        "num_truecrossings": sum(1 for c in project.crossings if c.true_crossing),
        "num_truecrossings_analyzed": sum(1 for c in analyzed if c.true_crossing),
    }
    return [
        NavAdjustMessage.error(f"{name} is {getattr(project, name)}, expected {value}")
        for name, value in expected.items()
        if getattr(project, name) != value
    ]
