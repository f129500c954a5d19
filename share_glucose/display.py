"""Presentation helpers for readings: arrows, bands, colors and error messages."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Union

from .errors import (
    AuthenticationError,
    HttpError,
    NetworkError,
    NoDataError,
    RateLimitedError,
    SessionRenewalFailedError,
    ShareErrorCode,
)
from .models import FormattedReading, GlucoseRange, GlucoseThresholds, GlucoseUnit, TrendCode

if TYPE_CHECKING:
    from .config import ShareConfig

TREND_ARROWS: dict[TrendCode, str] = {
    TrendCode.DOUBLE_UP: "⇈",
    TrendCode.SINGLE_UP: "↑",
    TrendCode.FORTY_FIVE_UP: "↗",
    TrendCode.FLAT: "→",
    TrendCode.FORTY_FIVE_DOWN: "↘",
    TrendCode.SINGLE_DOWN: "↓",
    TrendCode.DOUBLE_DOWN: "⇊",
    TrendCode.NOT_COMPUTABLE: "-",
    TrendCode.RATE_OUT_OF_RANGE: "?",
}

TREND_DESCRIPTIONS: dict[TrendCode, str] = {
    TrendCode.DOUBLE_UP: "Rising Rapidly",
    TrendCode.SINGLE_UP: "Rising",
    TrendCode.FORTY_FIVE_UP: "Rising Slowly",
    TrendCode.FLAT: "Stable",
    TrendCode.FORTY_FIVE_DOWN: "Falling Slowly",
    TrendCode.SINGLE_DOWN: "Falling",
    TrendCode.DOUBLE_DOWN: "Falling Rapidly",
    TrendCode.NOT_COMPUTABLE: "Unable to Determine",
    TrendCode.RATE_OUT_OF_RANGE: "Out of Range",
}

AUTH_ERROR = "Auth Error"

_CODE_MESSAGES: dict[ShareErrorCode, tuple[str, str]] = {
    ShareErrorCode.ACCOUNT_PASSWORD_INVALID: (AUTH_ERROR, "Invalid username or password"),
    ShareErrorCode.ACCOUNT_NOT_FOUND: (AUTH_ERROR, "Account not found"),
    ShareErrorCode.SSO_AUTHENTICATE_PASSWORD_INVALID: (AUTH_ERROR, "Invalid password"),
    ShareErrorCode.SSO_AUTHENTICATE_MAX_ATTEMPTS_EXCEEDED: (
        AUTH_ERROR,
        "Too many login attempts; try again later",
    ),
}


def trend_arrow(trend: TrendCode) -> str:
    return TREND_ARROWS.get(trend, "-")


def trend_description(trend: TrendCode) -> str:
    return TREND_DESCRIPTIONS.get(trend, "Unknown")


def format_delta(reading: FormattedReading) -> str:
    """Signed one-decimal delta, e.g. ``+2.0``; empty when the reading has none."""

    text = reading.formatted_delta
    if text is None:
        return ""
    return f"+{text}" if reading.delta > 0 else text


def elapsed_minutes(reading: FormattedReading, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return int((now - reading.timestamp).total_seconds() // 60)


def thresholds_in_unit(thresholds: GlucoseThresholds, unit: GlucoseUnit) -> GlucoseThresholds:
    """Express mg/dL thresholds in ``unit``; mmol/L limits are rounded to one decimal."""

    if unit is GlucoseUnit.MG_DL:
        return thresholds
    return GlucoseThresholds(
        urgent_high=round(thresholds.urgent_high / 18.0, 1),
        high=round(thresholds.high / 18.0, 1),
        low=round(thresholds.low / 18.0, 1),
        urgent_low=round(thresholds.urgent_low / 18.0, 1),
    )


def classify_value(
    value: Union[int, float, str],
    unit: GlucoseUnit,
    thresholds: GlucoseThresholds,
) -> GlucoseRange:
    """Place a display-unit value in its band; the high limits are inclusive."""

    limits = thresholds_in_unit(thresholds, unit)
    numeric = float(value)
    if numeric >= limits.urgent_high:
        return GlucoseRange.URGENT_HIGH
    if numeric >= limits.high:
        return GlucoseRange.HIGH
    if numeric > limits.low:
        return GlucoseRange.NORMAL
    if numeric > limits.urgent_low:
        return GlucoseRange.LOW
    return GlucoseRange.URGENT_LOW


def range_color(band: GlucoseRange, config: "ShareConfig") -> str:
    """Configured hex color for a band."""

    return getattr(config, f"{band.value}_color")


def reading_summary_lines(reading: FormattedReading, local_tz=None) -> list[str]:
    """Menu-style text lines describing a reading."""

    local_time = reading.timestamp.astimezone(local_tz).strftime("%H:%M")
    unit = reading.unit.value
    lines = [
        f"Last Reading: {reading.value} {unit}",
        f"Time: {local_time}",
        f"Trend: {trend_description(reading.trend)}",
    ]
    if reading.delta is not None:
        lines.append(f"Delta: {format_delta(reading)} {unit}")
    return lines


def describe_error(error: BaseException) -> tuple[str, str]:
    """Return a short label and a detail line suitable for showing to the user."""

    if isinstance(error, HttpError) and error.code in _CODE_MESSAGES:
        return _CODE_MESSAGES[error.code]
    if isinstance(error, SessionRenewalFailedError):
        return AUTH_ERROR, "Session could not be renewed; check your credentials"
    if isinstance(error, AuthenticationError):
        return AUTH_ERROR, str(error)
    if isinstance(error, NetworkError):
        return "Network Error", "Please check your internet connection"
    if isinstance(error, RateLimitedError):
        return "Rate Limited", "Too many requests; will retry on the next poll"
    if isinstance(error, NoDataError):
        return "No Data", "No glucose data available"
    return "Error", str(error)
