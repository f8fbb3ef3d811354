#!/usr/bin/env python3
"""Tests for Status enum and StatusResult."""

from chassis import Status, StatusResult


class TestStatus:
    """Tests for Status enum ordering."""

    def test_urgency_ordering(self):
        """Lower value = more urgent."""
        assert Status.OVERDUE.value < Status.DUE_SOON.value
        assert Status.DUE_SOON.value < Status.OK.value
        assert Status.OK.value < Status.NONE.value


class TestStatusResult:
    """Tests for StatusResult."""

    def test_is_due(self):
        assert StatusResult(Status.OVERDUE, "Overdue 3d", -3).is_due
        assert StatusResult(Status.DUE_SOON, "Due in 3d", 3).is_due
        assert not StatusResult(Status.OK, "OK (90d)", 90).is_due
