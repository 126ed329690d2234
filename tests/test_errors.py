# -*- coding: utf-8 -*-
"""Tests for errors module."""

import pytest

from navadjust.enums import Severity
from navadjust.errors import InversionPreconditionError
from navadjust.errors import NavAdjustException
from navadjust.errors import NavAdjustMessage
from navadjust.errors import OperationResult
from navadjust.errors import TieLimitError
from navadjust.errors import operation


class TestNavAdjustMessage:
    """Tests for NavAdjustMessage records."""

    def test_str_with_context(self):
        message = NavAdjustMessage.error("Bad tie", crossing_id=3, tie_index=1)
        result = str(message)
        assert result.startswith("error: Bad tie")
        assert "crossing 3" in result
        assert "tie 1" in result

    def test_str_without_context(self):
        assert str(NavAdjustMessage.info("Done")) == "info: Done"

    def test_immutable(self):
        message = NavAdjustMessage.warning("Careful")
        with pytest.raises(AttributeError):
            message.message = "other"


class TestNavAdjustException:
    """Tests for the exception hierarchy."""

    def test_to_message(self):
        exc = TieLimitError("Too many ties", crossing_id=7)
        message = exc.to_message()
        assert message.severity == Severity.ERROR
        assert message.crossing_id == 7
        assert message.message == "Too many ties"

    def test_subclass(self):
        assert issubclass(TieLimitError, NavAdjustException)


class TestOperation:
    """Tests for the operation boundary decorator."""

    def test_success_passes_through(self):
        @operation
        def succeed():
            return OperationResult.ok(42)

        result = succeed()
        assert result
        assert result.value == 42

    def test_exception_becomes_failed_result(self):
        @operation
        def fail():
            raise TieLimitError("Too many ties", crossing_id=2)

        result = fail()
        assert not result
        assert len(result.errors) == 1
        assert result.errors[0].crossing_id == 2

    def test_precondition_problems_are_listed(self):
        problems = [
            NavAdjustMessage.error("first", crossing_id=0, tie_index=0),
            NavAdjustMessage.error("second", crossing_id=1, tie_index=0),
        ]

        @operation
        def fail():
            raise InversionPreconditionError("Inversion aborted", problems)

        result = fail()
        assert not result
        assert [m.message for m in result.messages] == [
            "Inversion aborted",
            "first",
            "second",
        ]

    def test_other_exceptions_propagate(self):
        @operation
        def fail():
            raise KeyError("not ours")

        with pytest.raises(KeyError):
            fail()
