"""Dexcom Share glucose polling library."""

from .cache import ClientMemory
from .config import ShareConfig, load_config_from_env
from .errors import (
    AuthenticationError,
    ErrorKind,
    HttpError,
    NetworkError,
    NoDataError,
    RateLimitedError,
    SessionExpiredError,
    SessionRenewalFailedError,
    ShareClientError,
    ShareErrorCode,
)
from .models import (
    Credentials,
    FormattedReading,
    GlucoseRange,
    GlucoseThresholds,
    GlucoseUnit,
    Region,
    Session,
    TrendCode,
    normalize_region,
)
from .normalizer import ReadingNormalizer, canonicalize_trend

__all__ = [
    "AuthenticationError",
    "ClientMemory",
    "Credentials",
    "ErrorKind",
    "FormattedReading",
    "GlucoseRange",
    "GlucoseThresholds",
    "GlucoseUnit",
    "HttpError",
    "NetworkError",
    "NoDataError",
    "RateLimitedError",
    "ReadingNormalizer",
    "Region",
    "Session",
    "SessionExpiredError",
    "SessionRenewalFailedError",
    "ShareClientError",
    "ShareConfig",
    "ShareErrorCode",
    "TrendCode",
    "canonicalize_trend",
    "load_config_from_env",
    "normalize_region",
]
