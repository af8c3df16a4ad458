"""Tests for ScheduleMatcher and check_schedule."""

from datetime import UTC, datetime, timedelta

import pytest

from maintenance_spine.core.errors import ScheduleSyntaxError
from maintenance_spine.scheduling import CheckKind, ScheduleMatcher, check_schedule

MONDAY = datetime(2026, 3, 2, 0, 0, tzinfo=UTC)


def _matching_minutes(matcher: ScheduleMatcher, start: datetime, minutes: int) -> list[datetime]:
    return [start + timedelta(minutes=i) for i in range(minutes) if matcher.matches(start + timedelta(minutes=i))]


class TestCompile:
    def test_single_line(self):
        matcher = ScheduleMatcher("0 2 * * *")
        assert len(matcher.tabs) == 1
        assert matcher.tabs[0].fields == ["0", "2", "*", "*", "*"]

    def test_comments_and_blank_lines_ignored(self):
        matcher = ScheduleMatcher("# nightly\n\n0 2 * * *\n   \n30 4 * * 6")
        assert [tab.line for tab in matcher.tabs] == ["0 2 * * *", "30 4 * * 6"]

    def test_empty_text_has_no_tabs(self):
        assert ScheduleMatcher("").tabs == []
        assert ScheduleMatcher(None).tabs == []

    def test_alias_expands(self):
        matcher = ScheduleMatcher("@daily")
        assert matcher.tabs[0].line == "@daily"
        assert matcher.tabs[0].expression == "H H * * *"

    @pytest.mark.parametrize(
        "text",
        ["61 * * * *", "0 25 * * *", "0 2 * *", "0 2 * * * *", "@sometimes", "banana"],
    )
    def test_invalid_lines(self, text):
        with pytest.raises(ScheduleSyntaxError) as exc_info:
            ScheduleMatcher(text)
        assert exc_info.value.schedule_text == text
        assert exc_info.value.line == text

    def test_invalid_line_reports_offending_line(self):
        with pytest.raises(ScheduleSyntaxError) as exc_info:
            ScheduleMatcher("0 2 * * *\n0 99 * * *")
        assert exc_info.value.line == "0 99 * * *"

    def test_unknown_zone(self):
        with pytest.raises(ScheduleSyntaxError):
            ScheduleMatcher("TZ=Nowhere/Special\n0 2 * * *")

    def test_unknown_default_zone(self):
        with pytest.raises(ScheduleSyntaxError):
            ScheduleMatcher("0 2 * * *", timezone="Nowhere/Special")


class TestMatches:
    def test_fixed_minute(self):
        matcher = ScheduleMatcher("0 2 * * *")
        assert matcher.matches(MONDAY.replace(hour=2))
        assert not matcher.matches(MONDAY.replace(hour=2, minute=1))
        assert not matcher.matches(MONDAY.replace(hour=3))

    def test_seconds_are_ignored(self):
        matcher = ScheduleMatcher("0 2 * * *")
        assert matcher.matches(MONDAY.replace(hour=2, second=42, microsecond=7))

    def test_naive_is_utc(self):
        matcher = ScheduleMatcher("0 2 * * *")
        assert matcher.matches(datetime(2026, 3, 2, 2, 0))

    def test_any_line_matches(self):
        matcher = ScheduleMatcher("0 2 * * *\n30 3 * * *")
        assert matcher.matches(MONDAY.replace(hour=2))
        assert matcher.matches(MONDAY.replace(hour=3, minute=30))

    def test_weekday_field(self):
        matcher = ScheduleMatcher("0 2 * * 1-5")
        assert matcher.matches(MONDAY.replace(hour=2))
        saturday = MONDAY + timedelta(days=5)
        assert not matcher.matches(saturday.replace(hour=2))

    def test_timezone_line(self):
        """TZ= applies to the lines that follow it."""
        # Berlin is UTC+1 in early March.
        matcher = ScheduleMatcher("TZ=Europe/Berlin\n0 2 * * *")
        assert matcher.matches(MONDAY.replace(hour=1))
        assert not matcher.matches(MONDAY.replace(hour=2))

    def test_default_timezone(self):
        matcher = ScheduleMatcher("0 2 * * *", timezone="Europe/Berlin")
        assert matcher.matches(MONDAY.replace(hour=1))

    def test_hashed_minute_is_stable_and_unique_per_hour(self):
        """H picks one minute in the hour, the same one for the same hash id."""
        first = ScheduleMatcher("H 2 * * *", hash_id="scheduler-a")
        again = ScheduleMatcher("H 2 * * *", hash_id="scheduler-a")

        hits = _matching_minutes(first, MONDAY.replace(hour=2), 60)
        assert len(hits) == 1
        assert _matching_minutes(again, MONDAY.replace(hour=2), 60) == hits

    def test_empty_never_matches(self):
        assert not ScheduleMatcher("").matches(MONDAY)


class TestNextMatch:
    def test_strictly_after(self):
        matcher = ScheduleMatcher("0 2 * * *")
        at_two = MONDAY.replace(hour=2)
        assert matcher.next_match(MONDAY) == at_two
        assert matcher.next_match(at_two) == at_two + timedelta(days=1)

    def test_earliest_of_lines(self):
        matcher = ScheduleMatcher("0 5 * * *\n0 3 * * *")
        assert matcher.next_match(MONDAY) == MONDAY.replace(hour=3)

    def test_result_is_utc(self):
        matcher = ScheduleMatcher("0 2 * * *", timezone="Europe/Berlin")
        result = matcher.next_match(MONDAY)
        assert result == MONDAY.replace(hour=1)
        assert result.utcoffset() == timedelta(0)

    def test_empty(self):
        assert ScheduleMatcher("").next_match(MONDAY) is None


class TestCheckSchedule:
    def test_ok(self):
        result = check_schedule("0 2 * * *")
        assert result.kind is CheckKind.OK
        assert result.message is None
        assert result.ok

    def test_every_minute_warning(self):
        result = check_schedule("* * * * *")
        assert result.kind is CheckKind.WARNING
        assert result.ok
        assert result.message == (
            'Do you really mean "every minute" when you say "* * * * *"? Perhaps you meant "H * * * *"'
        )

    def test_every_minute_warning_keeps_other_fields(self):
        result = check_schedule("* 2 * * 1")
        assert result.message.endswith('Perhaps you meant "H 2 * * 1"')

    def test_empty_warning(self):
        result = check_schedule("   ")
        assert result.kind is CheckKind.WARNING
        assert "never match" in result.message

    def test_error(self):
        result = check_schedule("61 * * * *")
        assert result.kind is CheckKind.ERROR
        assert not result.ok
        assert "61 * * * *" in result.message

    def test_to_dict(self):
        assert check_schedule("0 2 * * *").to_dict() == {"kind": "OK", "message": None}
