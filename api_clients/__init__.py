"""API clients and helpers for external services."""

from .share_client import GlucoseClient, fetch_history_frame
from .share_session import APPLICATION_ID, BASE_URLS, SessionManager
from .share_transport import ShareTransport, build_query_string, encode_query_component

__all__ = [
    "APPLICATION_ID",
    "BASE_URLS",
    "GlucoseClient",
    "SessionManager",
    "ShareTransport",
    "build_query_string",
    "encode_query_component",
    "fetch_history_frame",
]
