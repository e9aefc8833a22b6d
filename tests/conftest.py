from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

CASES_PATH = Path(__file__).parent / "cases.json"


def calc_time(
    now: datetime, year: int, month: int, day: int, hour: int, minute: int, second: int
) -> datetime:
    """Independent reference: step the calendar by hand, then add the clock part."""
    total = now.month - 1 + month
    shifted = now.replace(year=now.year + year + total // 12, month=total % 12 + 1, day=1)
    shifted += timedelta(days=now.day - 1 + day)
    return shifted + timedelta(hours=hour, minutes=minute, seconds=second)


@pytest.fixture(scope="session")
def now() -> datetime:
    return datetime(2023, 1, 1, tzinfo=timezone.utc)
