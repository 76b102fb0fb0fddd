"""
Tests for business-day and billing-period arithmetic.
"""

from datetime import datetime, timezone

from buscai.domain.periods import add_months, business_day_range


class TestBusinessDay:
    def test_sao_paulo_day_starts_at_three_utc(self):
        now = datetime(2026, 3, 10, 2, 30, tzinfo=timezone.utc)
        start, end = business_day_range(now, "America/Sao_Paulo")
        assert start == datetime(2026, 3, 9, 3, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)

    def test_after_local_midnight(self):
        now = datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)
        start, _ = business_day_range(now, "America/Sao_Paulo")
        assert start == now


class TestAddMonths:
    def test_simple(self):
        assert add_months(datetime(2026, 1, 15)) == datetime(2026, 2, 15)

    def test_clamps_to_month_end(self):
        assert add_months(datetime(2026, 1, 31)) == datetime(2026, 2, 28)

    def test_year_rollover(self):
        assert add_months(datetime(2026, 12, 5), 2) == datetime(2027, 2, 5)

    def test_leap_february(self):
        assert add_months(datetime(2028, 1, 31)) == datetime(2028, 2, 29)

    def test_keeps_timezone(self):
        start = datetime(2026, 3, 31, 15, 0, tzinfo=timezone.utc)
        assert add_months(start) == datetime(2026, 4, 30, 15, 0, tzinfo=timezone.utc)
