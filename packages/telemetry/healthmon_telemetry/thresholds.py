"""Severity bands for temperature readings."""

from __future__ import annotations

import math

from .models import TemperatureBand


WARM_ABOVE_C = 60.0
CRITICAL_ABOVE_C = 80.0


def classify_temperature(
    celsius: float | None,
    warm_above: float = WARM_ABOVE_C,
    critical_above: float = CRITICAL_ABOVE_C,
) -> TemperatureBand:
    # Readings at or below 0 °C are the "no sensor" sentinel, not a real temperature.
    if celsius is None or math.isnan(celsius) or celsius <= 0:
        return TemperatureBand.UNKNOWN
    if celsius > critical_above:
        return TemperatureBand.CRITICAL
    if celsius > warm_above:
        return TemperatureBand.WARM
    return TemperatureBand.NORMAL
