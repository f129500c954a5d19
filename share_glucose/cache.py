"""Memory carried between consecutive latest-reading calls."""
from __future__ import annotations

from dataclasses import dataclass

from models.share_models import ShareGlucoseValue


@dataclass
class ClientMemory:
    """Previous raw reading and delta, owned by a single normalizer."""

    previous_raw_reading: ShareGlucoseValue | None = None
    previous_delta: float | None = None

    def remember(self, reading: ShareGlucoseValue, delta: float) -> None:
        self.previous_raw_reading = reading.model_copy()
        self.previous_delta = delta
