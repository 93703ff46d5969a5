from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def parse_period(period_ym: str) -> tuple[datetime, datetime]:
    """
    "2026-03" -> [2026-03-01 00:00 UTC, 2026-04-01 00:00 UTC)
    """
    m = PERIOD_RE.match((period_ym or "").strip())
    if not m:
        raise ValueError("period must be in YYYY-MM format")
    year, month = int(m.group(1)), int(m.group(2))
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def progress_percent(achieved: Any, goal: Any) -> Optional[Decimal]:
    if goal is None:
        return None
    goal_d = Decimal(str(goal))
    if goal_d <= 0:
        return None
    return (Decimal(str(achieved)) / goal_d * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
