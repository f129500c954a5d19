"""
Dexcom Share glucose client: latest reading and historical window.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

import httpx
import pandas as pd

from models.share_models import ShareGlucoseValue
from share_glucose.cache import ClientMemory
from share_glucose.config import ShareConfig
from share_glucose.errors import NoDataError, SessionExpiredError, SessionRenewalFailedError
from share_glucose.history import readings_to_frame
from share_glucose.models import Credentials, FormattedReading, Session
from share_glucose.normalizer import ReadingNormalizer

from .share_session import SessionManager
from .share_transport import ShareTransport

READ_GLUCOSE_ENDPOINT = "/ShareWebServices/Services/Publisher/ReadPublisherLatestGlucoseValues"
LATEST_WINDOW_MINUTES = 1440
DEFAULT_HISTORY_MAX_COUNT = 288
MAX_SESSION_RETRIES = 1

T = TypeVar("T")


class GlucoseClient:
    """
    Client for the Share publisher endpoints.

    One instance serves one account. Operations on the same instance are
    serialized by an ``asyncio.Lock``; separate instances share nothing.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[ShareTransport] = None,
        memory: Optional[ClientMemory] = None,
    ):
        self.credentials = credentials
        self.transport = transport or ShareTransport(client=http_client)
        self.sessions = SessionManager(credentials, self.transport)
        self.normalizer = ReadingNormalizer(credentials.unit, memory or ClientMemory())
        self._lock = asyncio.Lock()
        logging.debug(
            f"GlucoseClient initialized: region={credentials.region.value}, "
            f"base_url={self.sessions.base_url}, unit={credentials.unit.value}"
        )

    @classmethod
    def from_config(cls, config: ShareConfig, **kwargs) -> "GlucoseClient":
        return cls(config.credentials, **kwargs)

    @property
    def memory(self) -> ClientMemory:
        return self.normalizer.memory

    async def authenticate(self) -> Session:
        async with self._lock:
            return await self.sessions.authenticate()

    async def get_latest_glucose(self) -> FormattedReading:
        """Fetch and smooth the most recent reading."""
        async with self._lock:
            readings = await self._with_session_retry(
                lambda session: self._read_values(session, LATEST_WINDOW_MINUTES, 1)
            )
            if not readings:
                logging.debug("No readings available in response")
                raise NoDataError("No readings available")
            return self.normalizer.format(readings[0])

    async def get_historical_glucose(
        self,
        minutes: int = LATEST_WINDOW_MINUTES,
        max_count: int = DEFAULT_HISTORY_MAX_COUNT,
    ) -> List[FormattedReading]:
        """Fetch a window of readings, oldest first. Empty windows return ``[]``."""
        async with self._lock:
            readings = await self._with_session_retry(
                lambda session: self._read_values(session, minutes, max_count)
            )
            formatted = [self.normalizer.format_historical(reading) for reading in readings]
            formatted.sort(key=lambda reading: reading.timestamp)
            logging.debug(f"Processed historical readings: {len(formatted)}")
            return formatted

    async def _with_session_retry(self, operation: Callable[[Session], Awaitable[T]]) -> T:
        retries = 0
        while True:
            session = await self.sessions.ensure_authenticated()
            try:
                return await operation(session)
            except SessionExpiredError as e:
                self.sessions.invalidate()
                if retries >= MAX_SESSION_RETRIES:
                    raise SessionRenewalFailedError(
                        "Share session expired again after re-authentication; check credentials"
                    ) from e
                retries += 1
                logging.info("Session expired, re-authenticating...")

    async def _read_values(self, session: Session, minutes: int, max_count: int) -> List[ShareGlucoseValue]:
        params = {
            "sessionId": session.session_id,
            "minutes": str(minutes),
            "maxCount": str(max_count),
        }
        logging.debug(f"Fetching glucose readings: minutes={minutes}, maxCount={max_count}")
        payload = await self.transport.send(
            f"{self.sessions.base_url}{READ_GLUCOSE_ENDPOINT}",
            "GET",
            query_params=params,
        )
        if not isinstance(payload, list):
            logging.warning(f"Unexpected non-list response from {READ_GLUCOSE_ENDPOINT}: {payload!r}")
            return []
        return [ShareGlucoseValue.model_validate(item) for item in payload if isinstance(item, dict)]


async def fetch_history_frame(
    client: GlucoseClient,
    minutes: int = LATEST_WINDOW_MINUTES,
    max_count: int = DEFAULT_HISTORY_MAX_COUNT,
) -> pd.DataFrame:
    readings = await client.get_historical_glucose(minutes, max_count)
    return readings_to_frame(readings)


__all__ = [
    "DEFAULT_HISTORY_MAX_COUNT",
    "GlucoseClient",
    "LATEST_WINDOW_MINUTES",
    "MAX_SESSION_RETRIES",
    "READ_GLUCOSE_ENDPOINT",
    "fetch_history_frame",
]
