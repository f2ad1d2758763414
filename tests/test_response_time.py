"""
Tests for outbound/inbound response-time pairing.
"""

from datetime import datetime, timedelta

import pytest

from shared.response_time import (
    MAX_RESPONSE_SECONDS,
    MessageEvent,
    average_response_times,
    events_from_rows,
    pair_responses,
)

T0 = datetime(2021, 5, 18, 9, 0, 0)


def outbound(group, seconds, attachment=True):
    return MessageEvent(group, T0 + timedelta(seconds=seconds), "Comunicator", "Not-Pending", attachment)


def inbound(group, seconds):
    return MessageEvent(group, T0 + timedelta(seconds=seconds), "Reply", "Reply")


class TestPairing:
    """Tests for pair_responses()."""

    def test_adjacent_pair(self):
        """An inbound right after its group's outbound is a response."""
        assert list(pair_responses([outbound("RO1", 0), inbound("RO1", 300)])) == [("RO1", 300.0)]

    def test_threshold_excludes_exactly_one_day(self):
        """A pair of exactly 86400 seconds is dropped."""
        events = [outbound("RO1", 0), inbound("RO1", MAX_RESPONSE_SECONDS)]
        assert list(pair_responses(events)) == []

    def test_threshold_includes_just_under_one_day(self):
        """86399 seconds still counts."""
        events = [outbound("RO1", 0), inbound("RO1", MAX_RESPONSE_SECONDS - 1)]
        assert list(pair_responses(events)) == [("RO1", 86399.0)]

    def test_non_adjacent_inbound_is_not_paired(self):
        """Another event between the outbound and the reply breaks the pair."""
        events = [
            outbound("RO1", 0),
            MessageEvent("RO1", T0 + timedelta(seconds=10), "System", "Sent"),
            inbound("RO1", 20),
        ]
        assert list(pair_responses(events)) == []

    def test_outbound_without_attachment_is_not_paired(self):
        """The outbound must carry an attachment."""
        assert list(pair_responses([outbound("RO1", 0, attachment=False), inbound("RO1", 30)])) == []

    def test_reply_from_other_group_is_not_paired(self):
        """An inbound only pairs with its own group's outbound."""
        assert list(pair_responses([outbound("RO1", 0), inbound("RO2", 30)])) == []

    def test_most_recent_outbound_is_used(self):
        """A second outbound replaces the pending one."""
        events = [outbound("RO1", 0), outbound("RO1", 100), inbound("RO1", 160)]
        assert list(pair_responses(events)) == [("RO1", 60.0)]

    def test_outbound_is_consumed_by_its_reply(self):
        """Two replies in a row only count once."""
        events = [outbound("RO1", 0), inbound("RO1", 50), inbound("RO1", 70)]
        assert list(pair_responses(events)) == [("RO1", 50.0)]


class TestAverages:
    """Tests for average_response_times()."""

    def test_per_group_average(self):
        """Averages are computed per group."""
        events = [
            outbound("RO1", 0), inbound("RO1", 100),
            outbound("RO1", 200), inbound("RO1", 500),
            outbound("RO2", 0), inbound("RO2", 60),
        ]
        assert average_response_times(events, per_group=True) == {"RO1": 200.0, "RO2": 60.0}

    def test_overflow_pair_does_not_change_average(self):
        """A reply more than a day later contributes nothing."""
        events = [
            outbound("RO1", 0), inbound("RO1", 300),
            outbound("RO1", 400), inbound("RO1", 90000),
        ]
        assert average_response_times(events, per_group=True) == {"RO1": 300.0}

    def test_single_mode_average(self):
        """Single mode averages across every pair."""
        events = [outbound("a", 0), inbound("a", 100), outbound("b", 0), inbound("b", 300)]
        assert average_response_times(events, per_group=False) == 200.0

    def test_empty_per_group(self):
        """No pairs gives an empty mapping."""
        assert average_response_times([outbound("RO1", 0)], per_group=True) == {}

    def test_empty_single_mode_is_none(self):
        """No pairs gives None rather than zero."""
        assert average_response_times([], per_group=False) is None

    def test_groups_without_pairs_are_omitted(self):
        """Only groups that produced a pair appear."""
        events = [outbound("RO1", 0), inbound("RO1", 10), outbound("RO2", 0)]
        assert average_response_times(events) == {"RO1": 10.0}


class TestEventsFromRows:
    """Tests for building events from query rows."""

    def test_grouping_column(self):
        """The grouping mode picks the key column."""
        rows = [
            {"roId": "RO1", "recipientId": "R9", "sentDate": T0, "generatedFrom": "Comunicator",
             "type": "Not-Pending", "attachment": "video-1"},
            {"roId": "RO1", "recipientId": "R9", "sentDate": T0, "generatedFrom": "Reply",
             "type": "Reply", "attachment": None},
        ]
        by_ro = events_from_rows(rows, "repair_order")
        by_recipient = events_from_rows(rows, "recipient")
        assert [e.group_key for e in by_ro] == ["RO1", "RO1"]
        assert [e.group_key for e in by_recipient] == ["R9", "R9"]
        assert by_ro[0].is_outbound and by_ro[0].has_attachment
        assert by_ro[1].is_inbound and not by_ro[1].has_attachment

    def test_unknown_grouping(self):
        """Only the two grouping modes are accepted."""
        with pytest.raises(ValueError):
            events_from_rows([], "campaign")
