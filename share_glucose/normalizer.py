"""Turn raw Share readings into display readings with a smoothed trend and delta."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Final

from models.share_models import ShareGlucoseValue

from .cache import ClientMemory
from .models import FormattedReading, GlucoseUnit, TrendCode

MGDL_PER_MMOL: Final[float] = 18.0
MAX_MEASURED_GAP_MS: Final[int] = 15 * 60 * 1000
CARRY_FORWARD_LIMIT: Final[float] = 2.0

_TREND_ALIASES: dict[str, TrendCode] = {
    "NONE": TrendCode.FLAT,
    "DOUBLEUP": TrendCode.DOUBLE_UP,
    "SINGLEUP": TrendCode.SINGLE_UP,
    "FORTYFIVEUP": TrendCode.FORTY_FIVE_UP,
    "FLAT": TrendCode.FLAT,
    "FORTYFIVEDOWN": TrendCode.FORTY_FIVE_DOWN,
    "SINGLEDOWN": TrendCode.SINGLE_DOWN,
    "DOUBLEDOWN": TrendCode.DOUBLE_DOWN,
    "NOTCOMPUTABLE": TrendCode.NOT_COMPUTABLE,
    "RATEOUTOFRANGE": TrendCode.RATE_OUT_OF_RANGE,
}

# (mg/dL, mmol/L) change per reading implied by a trend arrow
_TREND_DELTAS: dict[TrendCode, tuple[float, float]] = {
    TrendCode.DOUBLE_UP: (3.0, 0.17),
    TrendCode.SINGLE_UP: (2.0, 0.11),
    TrendCode.FORTY_FIVE_UP: (1.0, 0.06),
    TrendCode.FLAT: (0.0, 0.0),
    TrendCode.FORTY_FIVE_DOWN: (-1.0, -0.06),
    TrendCode.SINGLE_DOWN: (-2.0, -0.11),
    TrendCode.DOUBLE_DOWN: (-3.0, -0.17),
}

_DIGITS = re.compile(r"\d+")
_TREND_NOISE = re.compile(r"[\s-]+")


def canonicalize_trend(trend: object) -> TrendCode:
    """Map a free-form trend string onto a canonical code (``FLAT`` when unknown)."""

    key = _TREND_NOISE.sub("", str(trend or "")).upper()
    return _TREND_ALIASES.get(key, TrendCode.FLAT)


def correct_trend(trend: TrendCode, delta: float) -> TrendCode:
    """Override a stale trend code when the numeric change disagrees with it."""

    if delta < -3.0 and trend in (TrendCode.FLAT, TrendCode.FORTY_FIVE_UP, TrendCode.SINGLE_UP):
        return TrendCode.SINGLE_DOWN
    if delta < -1.0 and trend is TrendCode.FLAT:
        return TrendCode.FORTY_FIVE_DOWN
    if 1.0 < delta < 3.0 and trend is TrendCode.FLAT:
        return TrendCode.FORTY_FIVE_UP
    if delta > 3.0 and trend in (TrendCode.FLAT, TrendCode.FORTY_FIVE_DOWN, TrendCode.SINGLE_DOWN):
        return TrendCode.SINGLE_UP
    return trend


def parse_wire_time(wt: str) -> int:
    """Return the epoch-millisecond value embedded in a ``WT`` string, or 0."""

    match = _DIGITS.search(wt or "")
    return int(match.group(0)) if match else 0


def to_display_value(mg_dl: int, unit: GlucoseUnit) -> int | float:
    if unit is GlucoseUnit.MMOL_L:
        return round(mg_dl / MGDL_PER_MMOL, 1)
    return mg_dl


def trend_delta(trend: TrendCode, unit: GlucoseUnit) -> float:
    mg_dl, mmol = _TREND_DELTAS.get(trend, (0.0, 0.0))
    return mmol if unit is GlucoseUnit.MMOL_L else mg_dl


def _timestamp(epoch_ms: int) -> datetime:
    try:
        return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logging.warning(f"Unrepresentable reading timestamp {epoch_ms}; using epoch")
        return datetime.fromtimestamp(0, tz=timezone.utc)


class ReadingNormalizer:
    """Stateful formatter for the latest-reading series.

    Each call to :meth:`format` both reads and overwrites the injected
    ``ClientMemory``, so formatting the same reading twice can give different
    deltas: the second call sees the first as its predecessor.
    """

    def __init__(self, unit: GlucoseUnit, memory: ClientMemory | None = None) -> None:
        self.unit = unit
        self.memory = memory if memory is not None else ClientMemory()

    def format(self, raw: ShareGlucoseValue) -> FormattedReading:
        current_ms = parse_wire_time(raw.WT)
        trend = canonicalize_trend(raw.Trend)
        delta = self._compute_delta(raw, current_ms, trend)
        final_trend = correct_trend(trend, delta)
        if final_trend is not trend:
            logging.debug(f"Trend corrected {trend.value} -> {final_trend.value} (delta={delta})")

        self.memory.remember(raw, delta)

        reading = FormattedReading(
            value=to_display_value(raw.Value, self.unit),
            unit=self.unit,
            trend=final_trend,
            timestamp=_timestamp(current_ms),
            delta=round(delta, 1),
            raw_value=raw.Value,
        )
        logging.debug(f"Formatted reading: {reading}")
        return reading

    def format_historical(self, raw: ShareGlucoseValue) -> FormattedReading:
        """Convert a reading without touching memory; no delta, no trend correction."""

        return FormattedReading(
            value=to_display_value(raw.Value, self.unit),
            unit=self.unit,
            trend=canonicalize_trend(raw.Trend),
            timestamp=_timestamp(parse_wire_time(raw.WT)),
            delta=None,
            raw_value=raw.Value,
        )

    def _compute_delta(self, raw: ShareGlucoseValue, current_ms: int, trend: TrendCode) -> float:
        delta = 0.0
        previous = self.memory.previous_raw_reading
        if previous is not None:
            gap = current_ms - parse_wire_time(previous.WT)
            if gap <= MAX_MEASURED_GAP_MS:
                delta = float(raw.Value - previous.Value)
                if self.unit is GlucoseUnit.MMOL_L:
                    delta = delta / MGDL_PER_MMOL

        # unit-agnostic limit
        previous_delta = self.memory.previous_delta
        if delta == 0 and previous_delta and abs(previous_delta) <= CARRY_FORWARD_LIMIT:
            delta = previous_delta
            logging.debug(f"Carrying forward previous delta {delta}")

        if delta == 0:
            delta = trend_delta(trend, self.unit)
        return delta


__all__ = [
    "ReadingNormalizer",
    "canonicalize_trend",
    "correct_trend",
    "parse_wire_time",
    "to_display_value",
    "trend_delta",
]
