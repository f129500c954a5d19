"""Poll-based monitor that turns client results into display updates."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

from api_clients.share_client import GlucoseClient

from .config import ShareConfig
from .display import (
    AUTH_ERROR,
    classify_value,
    describe_error,
    format_delta,
    range_color,
    reading_summary_lines,
    trend_arrow,
)
from .errors import ShareClientError
from .models import FormattedReading, GlucoseRange

MISSING_CREDENTIALS_DETAIL = "Please enter your Dexcom Share credentials"

UpdateCallback = Callable[["MonitorUpdate"], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class MonitorUpdate:
    """Outcome of one poll: either a reading or an error label/detail."""

    polled_at: datetime
    reading: Optional[FormattedReading] = None
    band: Optional[GlucoseRange] = None
    color: Optional[str] = None
    label: str = ""
    detail: str = ""
    lines: tuple[str, ...] = ()
    error: Optional[ShareClientError] = None

    @property
    def ok(self) -> bool:
        return self.reading is not None


class GlucoseMonitor:
    """Polls the latest reading every ``update_interval`` seconds."""

    def __init__(
        self,
        config: ShareConfig,
        *,
        client_factory: Callable[[ShareConfig], GlucoseClient] = GlucoseClient.from_config,
    ) -> None:
        self._client_factory = client_factory
        self._config = config
        self._client = self._build_client(config)

    @property
    def config(self) -> ShareConfig:
        return self._config

    @property
    def client(self) -> Optional[GlucoseClient]:
        return self._client

    def _build_client(self, config: ShareConfig) -> Optional[GlucoseClient]:
        if not config.credentials.is_complete():
            logging.warning("Username or password not set")
            return None
        return self._client_factory(config)

    def update_config(self, config: ShareConfig) -> None:
        """Swap in new settings; a new client (fresh session and memory) is built."""

        self._config = config
        self._client = self._build_client(config)

    async def poll_once(self) -> MonitorUpdate:
        now = datetime.now(timezone.utc)
        if self._client is None:
            return MonitorUpdate(polled_at=now, label=AUTH_ERROR, detail=MISSING_CREDENTIALS_DETAIL)

        try:
            reading = await self._client.get_latest_glucose()
        except ShareClientError as e:
            label, detail = describe_error(e)
            logging.error(f"Error fetching Dexcom reading: {e}")
            return MonitorUpdate(polled_at=now, label=label, detail=detail, error=e)

        band = classify_value(reading.value, reading.unit, self._config.thresholds)
        return MonitorUpdate(
            polled_at=now,
            reading=reading,
            band=band,
            color=range_color(band, self._config),
            label=f"{reading.value} {trend_arrow(reading.trend)} {format_delta(reading)}",
            lines=tuple(reading_summary_lines(reading)),
        )

    async def run(self, on_update: UpdateCallback, iterations: Optional[int] = None) -> None:
        """Poll until cancelled, or ``iterations`` times when given."""

        count = 0
        while iterations is None or count < iterations:
            update = await self.poll_once()
            result = on_update(update)
            if asyncio.iscoroutine(result):
                await result
            count += 1
            if iterations is not None and count >= iterations:
                break
            await asyncio.sleep(self._config.update_interval)
