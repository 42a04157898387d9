"""Human-readable unit formatting for byte counts, durations, and ratios."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


UNAVAILABLE = "N/A"

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB")
_STEP = Decimal(1024)
_CENTS = Decimal("0.01")


def format_bytes(value: int | None) -> str:
    if value is None or value < 0:
        return UNAVAILABLE
    value = int(value)
    if value < 1024:
        return f"{value} B"

    scaled = Decimal(value)
    idx = 0
    while scaled >= _STEP and idx < len(_BYTE_UNITS) - 1:
        scaled /= _STEP
        idx += 1

    rounded = scaled.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if rounded >= _STEP and idx < len(_BYTE_UNITS) - 1:
        # 1023.995 KB rounds to 1024.00 KB; show it as 1.00 MB instead.
        rounded = (rounded / _STEP).quantize(_CENTS, rounding=ROUND_HALF_UP)
        idx += 1
    return f"{rounded} {_BYTE_UNITS[idx]}"


def split_duration(seconds: int) -> tuple[int, int, int, int]:
    """Return (days, hours, minutes, seconds) for a non-negative second count."""
    seconds = int(seconds)
    if seconds < 0:
        raise ValueError(f"duration must be non-negative, got {seconds}")
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return days, hours, minutes, secs


def format_duration(seconds: int | None) -> str:
    if seconds is None or seconds < 0:
        return UNAVAILABLE
    days, hours, minutes, secs = split_duration(seconds)
    day_label = "day" if days == 1 else "days"
    return f"{days} {day_label}, {hours} h {minutes} m {secs} s"


def format_percent(fraction: float | None) -> str:
    if fraction is None:
        return UNAVAILABLE
    pct = Decimal(str(float(fraction) * 100)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def format_celsius(value: float | None) -> str:
    if value is None:
        return UNAVAILABLE
    return f"{float(value):.2f} °C"
