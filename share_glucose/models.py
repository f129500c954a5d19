"""Core data models for the Dexcom Share client."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

ZERO_SESSION_ID = "00000000-0000-0000-0000-000000000000"


class Region(str, Enum):
    """Share deployment the account lives in."""

    US = "us"
    OUS = "ous"


_REGION_ALIASES: dict[str, Region] = {
    "us": Region.US,
    "usa": Region.US,
    "united states": Region.US,
    "ous": Region.OUS,
    "non-us": Region.OUS,
    "non_us": Region.OUS,
    "outside us": Region.OUS,
}


def normalize_region(value: object) -> Region:
    """Map a free-form region alias to ``Region``; unknown values fall back to OUS."""

    if isinstance(value, Region):
        return value
    key = str(value or "").strip().lower()
    return _REGION_ALIASES.get(key, Region.OUS)


class GlucoseUnit(str, Enum):
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"

    @classmethod
    def parse(cls, value: object) -> "GlucoseUnit":
        if isinstance(value, GlucoseUnit):
            return value
        key = str(value or "").strip().lower()
        for unit in cls:
            if unit.value.lower() == key:
                return unit
        raise ValueError(f"Unsupported glucose unit: {value!r}")


class TrendCode(str, Enum):
    """Canonical rate-of-change categories."""

    DOUBLE_UP = "DOUBLE_UP"
    SINGLE_UP = "SINGLE_UP"
    FORTY_FIVE_UP = "FORTY_FIVE_UP"
    FLAT = "FLAT"
    FORTY_FIVE_DOWN = "FORTY_FIVE_DOWN"
    SINGLE_DOWN = "SINGLE_DOWN"
    DOUBLE_DOWN = "DOUBLE_DOWN"
    NOT_COMPUTABLE = "NOT_COMPUTABLE"
    RATE_OUT_OF_RANGE = "RATE_OUT_OF_RANGE"


class GlucoseRange(str, Enum):
    """Threshold band a value falls into."""

    URGENT_HIGH = "urgent_high"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
    URGENT_LOW = "urgent_low"


@dataclass(frozen=True)
class Credentials:
    """Account identity plus the display unit, fixed for one client instance."""

    username: str
    password: str
    region: Region = Region.OUS
    unit: GlucoseUnit = GlucoseUnit.MG_DL

    @classmethod
    def create(
        cls,
        username: str,
        password: str,
        region: object = Region.OUS,
        unit: object = GlucoseUnit.MG_DL,
    ) -> "Credentials":
        return cls(
            username=username or "",
            password=password or "",
            region=normalize_region(region),
            unit=GlucoseUnit.parse(unit),
        )

    def is_complete(self) -> bool:
        return bool(self.username and self.password)

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, password='***', "
            f"region={self.region.value!r}, unit={self.unit.value!r})"
        )


@dataclass(frozen=True)
class Session:
    """Opaque identifiers proving an authenticated identity."""

    account_id: str
    session_id: str

    @property
    def is_valid(self) -> bool:
        return bool(self.account_id and self.session_id and self.session_id != ZERO_SESSION_ID)


@dataclass(frozen=True)
class GlucoseThresholds:
    """Band limits, in mg/dL unless converted for display."""

    urgent_high: float = 250
    high: float = 180
    low: float = 70
    urgent_low: float = 55


@dataclass(frozen=True)
class FormattedReading:
    """A reading converted to the display unit."""

    value: Union[int, float]
    unit: GlucoseUnit
    trend: TrendCode
    timestamp: datetime
    delta: Optional[float]
    raw_value: int

    @property
    def formatted_delta(self) -> Optional[str]:
        if self.delta is None:
            return None
        return f"{self.delta:.1f}"
