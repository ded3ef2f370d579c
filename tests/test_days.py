"""Tests for day grouping and the month grid."""

from daypage.days import dates_with_entries, day_group, month_grid, shift_month
from tests.conftest import make_entry


class TestDayGroup:

    def test_single(self):
        group = day_group([make_entry("1", "2026-03-01"), make_entry("2", "2026-03-02")], "2026-03-01")
        assert [e.id for e in group.entries] == ["1"]
        assert not group.has_multiple
        assert group.first.id == "1"

    def test_multiple_in_navigation_order(self):
        entries = [
            make_entry("late", "2026-03-01", created_at="2026-03-01T12:00:00.000Z"),
            make_entry("early", "2026-03-01", created_at="2026-03-01T08:00:00.000Z"),
        ]
        group = day_group(entries, "2026-03-01")
        assert group.has_multiple
        assert [e.id for e in group.entries] == ["early", "late"]

    def test_empty(self):
        group = day_group([], "2026-03-01")
        assert group.entries == []
        assert group.first is None


class TestMonthGrid:

    def test_leading_blanks_sunday_first(self):
        # 1 March 2026 is a Sunday, 1 October 2026 a Thursday
        assert month_grid(2026, 3, today_iso="2000-01-01").leading_blanks == 0
        assert month_grid(2026, 10, today_iso="2000-01-01").leading_blanks == 4

    def test_days_and_markers(self):
        entries = [make_entry("1", "2026-02-14"), make_entry("2", "2026-03-01")]
        view = month_grid(2026, 2, entries, today_iso="2026-02-20", selected="2026-02-14")
        assert view.label == "February 2026"
        assert len(view.days) == 28
        day14 = view.days[13]
        assert day14.has_entry and day14.is_selected and not day14.is_today
        assert view.days[19].is_today
        assert [d.date for d in view.days if d.has_entry] == ["2026-02-14"]

    def test_weeks_are_full_rows(self):
        view = month_grid(2026, 10, today_iso="2000-01-01")
        weeks = view.weeks()
        assert all(len(w) == 7 for w in weeks)
        assert weeks[0][:4] == [None, None, None, None]
        assert weeks[0][4].day == 1

    def test_leap_year(self):
        assert len(month_grid(2028, 2, today_iso="2000-01-01").days) == 29


class TestHelpers:

    def test_dates_with_entries(self):
        entries = [make_entry("1", "2026-03-01"), make_entry("2", "2026-03-01"),
                   make_entry("3", "2026-04-01")]
        assert dates_with_entries(entries, 2026, 3) == {"2026-03-01"}

    def test_shift_month_wraps(self):
        assert shift_month(2026, 12, 1) == (2027, 1)
        assert shift_month(2026, 1, -1) == (2025, 12)
        assert shift_month(2026, 5, -17) == (2024, 12)
        assert shift_month(2026, 5, 0) == (2026, 5)
