"""Settings consumed by the client, the monitor and the CLI."""
from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Credentials, GlucoseThresholds, GlucoseUnit, Region, normalize_region

ENV_PREFIX = "DEXCOM_SHARE_"

_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class ShareConfig(BaseModel):
    """Flat option set with fixed defaults, validated once at construction."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(default="", description="Share account username")
    password: str = Field(default="", repr=False, description="Share account password")
    region: Region = Field(default=Region.OUS, description="us or ous, aliases accepted")
    unit: GlucoseUnit = Field(default=GlucoseUnit.MG_DL, description="Display unit")

    urgent_high_threshold: int = Field(default=250, gt=0, description="mg/dL")
    high_threshold: int = Field(default=180, gt=0, description="mg/dL")
    low_threshold: int = Field(default=70, gt=0, description="mg/dL")
    urgent_low_threshold: int = Field(default=55, gt=0, description="mg/dL")

    urgent_high_color: str = Field(default="#ff0000", pattern=_HEX_COLOR)
    high_color: str = Field(default="#ffa500", pattern=_HEX_COLOR)
    normal_color: str = Field(default="#00ff00", pattern=_HEX_COLOR)
    low_color: str = Field(default="#ffa500", pattern=_HEX_COLOR)
    urgent_low_color: str = Field(default="#ff0000", pattern=_HEX_COLOR)

    update_interval: int = Field(default=300, gt=0, description="Seconds between polls")
    enable_debug_logs: bool = False

    @field_validator("region", mode="before")
    @classmethod
    def _normalize_region(cls, value: Any) -> Region:
        return normalize_region(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _parse_unit(cls, value: Any) -> GlucoseUnit:
        return GlucoseUnit.parse(value)

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "ShareConfig":
        if not (
            self.urgent_low_threshold
            < self.low_threshold
            < self.high_threshold
            < self.urgent_high_threshold
        ):
            raise ValueError("thresholds must satisfy urgent_low < low < high < urgent_high")
        return self

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            username=self.username,
            password=self.password,
            region=self.region,
            unit=self.unit,
        )

    @property
    def thresholds(self) -> GlucoseThresholds:
        return GlucoseThresholds(
            urgent_high=self.urgent_high_threshold,
            high=self.high_threshold,
            low=self.low_threshold,
            urgent_low=self.urgent_low_threshold,
        )

    def with_overrides(self, **overrides: Any) -> "ShareConfig":
        """Return a re-validated copy; ``None`` values are ignored."""

        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ShareConfig(**values)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ShareConfig:
    """
    Build a ShareConfig from ``DEXCOM_SHARE_*`` environment variables

    Args:
        environ: Mapping to read instead of ``os.environ``

    Returns:
        ShareConfig: Validated configuration; unset variables keep their defaults
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for name in ShareConfig.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw
    return ShareConfig(**values)
