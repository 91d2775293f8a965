from datetime import datetime, timedelta

from fdp_support.config import settings
from fdp_support.utils.time import LOCAL_TZ, now_local_naive, to_local_iso


def test_timezone_comes_from_settings():
    assert str(LOCAL_TZ) == settings.TIMEZONE


def test_naive_timestamps_are_read_as_local():
    stored = datetime(2025, 3, 1, 9, 30)
    parsed = datetime.fromisoformat(to_local_iso(stored))
    assert parsed.replace(tzinfo=None) == stored
    assert parsed.utcoffset() == LOCAL_TZ.utcoffset(stored)


def test_now_is_naive():
    now = now_local_naive()
    assert now.tzinfo is None
    assert abs(datetime.now(LOCAL_TZ).replace(tzinfo=None) - now) < timedelta(seconds=5)
