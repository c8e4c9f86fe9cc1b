"""Tests for time utilities."""

from datetime import datetime, timedelta, timezone

from procure_app.utils.time import format_timestamp, is_expired, seconds_until, utc_now


class TestTimeUtils:
    """Test deadline and wait helpers."""

    def test_utc_now_is_aware(self):
        now = utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_seconds_until_future(self, fixed_now):
        target = fixed_now + timedelta(seconds=42)
        assert seconds_until(target, fixed_now) == 42.0

    def test_seconds_until_past_is_zero(self, fixed_now):
        """Arrival times already reached need no wait."""
        assert seconds_until(fixed_now - timedelta(minutes=5), fixed_now) == 0.0

    def test_is_expired(self, fixed_now):
        assert is_expired(fixed_now, fixed_now)
        assert is_expired(fixed_now - timedelta(seconds=1), fixed_now)
        assert not is_expired(fixed_now + timedelta(seconds=1), fixed_now)

    def test_no_deadline_never_expires(self):
        assert not is_expired(None)

    def test_format_timestamp(self):
        ts = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert format_timestamp(ts) == "2026-01-01T12:00:00+00:00"
