# -*- coding: utf-8 -*-
"""Tests for validation module."""

import pytest

from navadjust.enums import CrossingStatus
from navadjust.errors import InversionPreconditionError
from navadjust.project.models import Crossing
from navadjust.project.models import UncertaintyEllipsoid
from navadjust.solver import SolverSettings
from navadjust.ties import add_global_tie
from navadjust.ties import add_tie
from navadjust.validation import check_counters
from navadjust.validation import check_tie_references
from navadjust.validation import has_enough_crossings
from navadjust.validation import inversion_problems
from navadjust.validation import is_invertible_uncertainty
from navadjust.validation import validate_inversion

UNCERTAINTY = UncertaintyEllipsoid.isotropic(1.0, 0.1)


class TestIsInvertibleUncertainty:
    """Tests for is_invertible_uncertainty function."""

    def test_valid(self):
        assert is_invertible_uncertainty(UNCERTAINTY)

    def test_unset_sentinel(self):
        """Test that the never-estimated sentinel is rejected."""
        assert not is_invertible_uncertainty(UncertaintyEllipsoid.unset())

    @pytest.mark.parametrize(
        "sigmas", [(0.0, 1.0, 1.0), (1.0, -1.0, 1.0), (1.0, 1.0, 0.0)]
    )
    def test_not_strictly_positive(self, sigmas):
        sigma1, sigma2, sigma3 = sigmas
        unc = UncertaintyEllipsoid(sigma1=sigma1, sigma2=sigma2, sigma3=sigma3)
        assert not is_invertible_uncertainty(unc)


def _add_skipped_crossings(project, count):
    """Add ``count`` analyzed crossings that are not true crossings."""
    for _ in range(count):
        crossing_id = project.add_crossing(
            Crossing(file_id_1=0, section_1=1, file_id_2=1, section_2=1, overlap=30)
        )
        project.set_crossing_status(crossing_id, CrossingStatus.SKIP)


class TestHasEnoughCrossings:
    """Tests for has_enough_crossings function."""

    def test_every_true_crossing_analyzed(self, crossing_project):
        """Test that one analyzed crossing suffices when it is the only true one."""
        crossing_project.add_crossing(
            Crossing(file_id_1=0, section_1=1, file_id_2=1, section_2=1)
        )
        crossing_project.set_crossing_status(0, CrossingStatus.SKIP)
        assert crossing_project.num_crossings_analyzed == 1
        assert has_enough_crossings(crossing_project, SolverSettings())

    def test_true_crossing_left_unanalyzed(self, crossing_project):
        _add_skipped_crossings(crossing_project, 1)
        assert not has_enough_crossings(crossing_project, SolverSettings())
        assert has_enough_crossings(
            crossing_project, SolverSettings(min_analyzed_crossings=1)
        )

    @pytest.mark.parametrize(("count", "expected"), [(9, False), (10, True)])
    def test_default_minimum(self, crossing_project, count, expected):
        """Test that ten analyzed crossings allow inversion with true ones left."""
        _add_skipped_crossings(crossing_project, count)
        assert crossing_project.num_truecrossings_analyzed == 0
        assert has_enough_crossings(crossing_project, SolverSettings()) is expected


class TestInversionProblems:
    """Tests for inversion_problems and validate_inversion."""

    def test_no_problems(self, ctx):
        add_tie(ctx, 0, uncertainty=UNCERTAINTY)
        assert inversion_problems(ctx.project, SolverSettings()) == []
        validate_inversion(ctx.project, SolverSettings())

    def test_too_few_crossings(self, crossing_project):
        problems = inversion_problems(crossing_project, SolverSettings())
        assert len(problems) == 1
        assert "0 crossings analyzed" in problems[0].message
        assert inversion_problems(
            crossing_project, SolverSettings(min_analyzed_crossings=0)
        ) == []

    def test_skipped_crossing_counts_as_analyzed(self, crossing_project):
        crossing_project.set_crossing_status(0, CrossingStatus.SKIP)
        assert inversion_problems(crossing_project, SolverSettings()) == []

    def test_every_offender_listed(self, ctx):
        add_tie(ctx, 0)
        add_tie(ctx, 0, uncertainty=UNCERTAINTY)
        add_tie(ctx, 0)
        add_global_tie(ctx, 1, 0)
        problems = inversion_problems(ctx.project, SolverSettings())
        assert [(p.crossing_id, p.tie_index) for p in problems[:2]] == [(0, 0), (0, 2)]
        assert (problems[2].file_id, problems[2].section_id) == (1, 0)

    def test_validate_raises_with_problem_list(self, ctx):
        add_tie(ctx, 0)
        with pytest.raises(InversionPreconditionError) as exc_info:
            validate_inversion(ctx.project, SolverSettings())
        assert len(exc_info.value.problems) == 1
        assert "1 problem" in exc_info.value.message


class TestConsistencyChecks:
    """Tests for check_tie_references and check_counters."""

    def test_consistent_after_operations(self, ctx):
        add_tie(ctx, 0)
        add_global_tie(ctx, 0, 1)
        assert check_tie_references(ctx.project) == []
        assert check_counters(ctx.project) == []

    def test_detects_reference_count_drift(self, ctx):
        add_tie(ctx, 0)
        ctx.project.files[1].sections[0].samples[5].num_ties = 0
        problems = check_tie_references(ctx.project)
        assert len(problems) == 1
        assert (problems[0].file_id, problems[0].section_id) == (1, 0)

    def test_detects_counter_drift(self, ctx):
        add_tie(ctx, 0)
        ctx.project.num_ties = 5
        ctx.project.num_truecrossings = 0
        problems = check_counters(ctx.project)
        assert len(problems) == 2
        assert "num_ties is 5, expected 1" in problems[0].message

    def test_recount_repairs_drift(self, ctx):
        add_tie(ctx, 0)
        project = ctx.project
        project.num_ties = 5
        project.files[0].sections[0].samples[5].num_ties = 3
        project.recount()
        assert check_counters(project) == []
        assert check_tie_references(project) == []
