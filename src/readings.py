"""Watch accuracy arithmetic: deviation of a reading against a reference clock."""

from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple

HALF_DAY = 12 * 3600
DAY = 24 * 3600


class Reading(NamedTuple):
    captured_at: datetime
    cumulative_deviation: float


def seconds_of_day(hour: int, minute: int, second: int) -> int:
    return hour * 3600 + minute * 60 + second


def deviation_seconds(watch_time: Tuple[int, int, int], reference_time: Tuple[int, int, int]) -> float:
    """Positive when the watch is fast, negative when slow.

    Differences beyond half a day wrap around midnight, so 23:59:50 against
    00:00:10 is -20 s rather than almost a full day.
    """
    deviation = float(seconds_of_day(*watch_time) - seconds_of_day(*reference_time))
    if deviation > HALF_DAY:
        deviation -= DAY
    elif deviation < -HALF_DAY:
        deviation += DAY
    return deviation


def format_deviation(seconds: float) -> str:
    sign = "+" if seconds >= 0 else "-"
    magnitude = abs(seconds)
    if magnitude < 60:
        return f"{sign}{magnitude:.1f}s"
    minutes = int(magnitude) // 60
    rest = magnitude % 60
    return f"{sign}{minutes}m {rest:.1f}s"


def average_deviation_per_day(readings: List[Reading]) -> Optional[float]:
    if len(readings) < 2:
        return None
    ordered = sorted(readings, key=lambda r: r.captured_at)
    first, last = ordered[0], ordered[-1]
    days = (last.captured_at - first.captured_at).total_seconds() / DAY
    if days <= 0:
        return None
    return (last.cumulative_deviation - first.cumulative_deviation) / days
