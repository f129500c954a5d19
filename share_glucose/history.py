"""Tabular views and summary statistics over a window of historical readings."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from .display import classify_value
from .models import FormattedReading, GlucoseRange, GlucoseThresholds, GlucoseUnit

_FRAME_COLUMNS = ["timestamp", "value", "glucose_mg_dL", "trend", "unit"]


@dataclass(frozen=True)
class HistorySummary:
    """Aggregate metrics for a window, in the display unit."""

    unit: GlucoseUnit
    total_readings: int
    mean_value: float
    std_value: float
    min_value: float
    max_value: float
    range_fractions: Mapping[GlucoseRange, float] = field(default_factory=dict)


def readings_to_frame(readings: Sequence[FormattedReading]) -> pd.DataFrame:
    """Return readings as a DataFrame sorted by timestamp."""

    if not readings:
        return pd.DataFrame(columns=_FRAME_COLUMNS)

    frame = pd.DataFrame(
        {
            "timestamp": pd.to_datetime([r.timestamp for r in readings], utc=True),
            "value": [float(r.value) for r in readings],
            "glucose_mg_dL": [r.raw_value for r in readings],
            "trend": [r.trend.value for r in readings],
            "unit": [r.unit.value for r in readings],
        }
    )
    return frame.sort_values("timestamp", kind="stable").reset_index(drop=True)


def summarize_history(
    readings: Sequence[FormattedReading],
    thresholds: GlucoseThresholds,
) -> HistorySummary | None:
    """Aggregate a window of readings; ``None`` when the window is empty."""

    if not readings:
        return None

    unit = readings[0].unit
    values = np.asarray([float(r.value) for r in readings], dtype=float)
    bands = [classify_value(r.value, r.unit, thresholds) for r in readings]
    total = len(bands)
    fractions = {band: sum(1 for b in bands if b is band) / total for band in GlucoseRange}

    return HistorySummary(
        unit=unit,
        total_readings=total,
        mean_value=round(float(np.nanmean(values)), 1),
        std_value=round(float(np.nanstd(values, ddof=0)), 1),
        min_value=float(np.nanmin(values)),
        max_value=float(np.nanmax(values)),
        range_fractions=fractions,
    )
