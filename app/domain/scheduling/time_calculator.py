"""Time parsing and calculations for HH:mm clock times.

Clock times are plain strings within a single day; nothing here wraps
across midnight.
"""

import re

# Accepts hours past 23 so that computed ends beyond midnight still compare
CLOCK_PATTERN = re.compile(r"^(\d{2}):([0-5]\d)$")


def time_to_minutes(value: str) -> int:
    """Convert HH:mm to minutes since midnight"""
    match = CLOCK_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid clock time: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(total: int) -> str:
    """Convert minutes since midnight to HH:mm"""
    if total < 0:
        raise ValueError("Minutes must be non-negative")
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(value: str, minutes: int) -> str:
    """
    Return ``value`` shifted by ``minutes``.

    The result is not wrapped; callers must keep it within the day
    (24:00 is the last representable end).
    """
    return minutes_to_time(time_to_minutes(value) + minutes)


def generate_slots(open_time: str, close_time: str, duration: int) -> list[str]:
    """
    Candidate start times from ``open_time`` stepping by ``duration``.

    A slot is emitted while its start is strictly before ``close_time``; whether
    the slot fits before closing is checked at booking time, not here.
    """
    if duration <= 0:
        raise ValueError("Slot duration must be positive")

    current = time_to_minutes(open_time)
    close = time_to_minutes(close_time)

    slots = []
    while current < close:
        slots.append(minutes_to_time(current))
        current += duration
    return slots


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open interval overlap; back-to-back ranges do not overlap"""
    return time_to_minutes(start_a) < time_to_minutes(end_b) and time_to_minutes(
        start_b
    ) < time_to_minutes(end_a)


def within_hours(start_time: str, end_time: str, open_time: str, close_time: str) -> bool:
    return time_to_minutes(start_time) >= time_to_minutes(open_time) and time_to_minutes(
        end_time
    ) <= time_to_minutes(close_time)
