"""
HTTP transport for the Dexcom Share web services.
"""
import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

from models.share_models import ShareErrorBody
from share_glucose.errors import (
    SESSION_EXPIRED_CODES,
    HttpError,
    NetworkError,
    RateLimitedError,
    SessionExpiredError,
    ShareErrorCode,
)

REQUEST_TIMEOUT_SECONDS = 30.0
# The service only answers clients presenting the mobile app's agent string.
SHARE_USER_AGENT = "Dexcom Share/3.0.2.11"

BASE_HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Accept": "application/json",
    "User-Agent": SHARE_USER_AGENT,
}


def encode_query_component(value: Any) -> str:
    """Percent-encode everything except ``A-Z a-z 0-9 - _ . ~``.

    This is stricter than a browser's component encoder: ``! ' ( ) *`` are
    escaped too, with uppercase hex digits.
    """
    return quote(str(value), safe="")


def build_query_string(params: Mapping[str, Any]) -> str:
    return "&".join(
        f"{encode_query_component(key)}={encode_query_component(value)}"
        for key, value in params.items()
    )


def _parse_error_code(body: str) -> Optional[ShareErrorCode]:
    try:
        error = ShareErrorBody.model_validate(json.loads(body))
    except ValueError:  # also covers pydantic.ValidationError
        return None
    return ShareErrorCode.parse(error.Code)


def _parse_success_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        if text.startswith('"'):
            text = text[1:]
        if text.endswith('"'):
            text = text[:-1]
        return text


def classify_response(status: int, text: str) -> Any:
    """
    Turn a status code and body into a payload or a typed error.

    Returns:
        Parsed JSON for a 200 response, or the unquoted raw text when the body is not JSON

    Raises:
        RateLimitedError: On 429
        SessionExpiredError: On 401/500 whose body carries a session-invalid ``Code``
        HttpError: On every other non-200 status
    """
    if status == 200:
        return _parse_success_body(text)
    if status == 429:
        raise RateLimitedError(f"Rate limited by Share service: {text}")

    code = _parse_error_code(text)
    if status in (401, 500) and code in SESSION_EXPIRED_CODES:
        raise SessionExpiredError(f"Share session expired ({code.value})")
    raise HttpError(status, text, code)


class ShareTransport:
    """Sends requests to the Share service and classifies the responses."""

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.timeout = timeout

    async def send(
        self,
        url: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        method = method.upper()
        if query_params:
            url = f"{url}?{build_query_string(query_params)}"
        json_body = dict(body) if body is not None and method != "GET" else None

        # The full URL carries the session id, so only the path is logged.
        path = httpx.URL(url).path
        try:
            if self._client is not None:
                response = await self._request(self._client, method, url, json_body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._request(client, method, url, json_body)
        except httpx.TimeoutException as e:
            logging.error(f"Timeout calling Share API {method} {path}: {e}")
            raise NetworkError(f"Timed out after {self.timeout:.0f}s: {method} {path}") from e
        except httpx.RequestError as e:
            logging.error(f"Request error calling Share API {method} {path}: {e}")
            raise NetworkError(f"Network failure calling {method} {path}: {e}") from e

        logging.info(f"Request {method} {path} completed with status: {response.status_code}")
        if response.status_code != 200:
            logging.error(f"Response text: {response.text}")
        return classify_response(response.status_code, response.text)

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        json_body: Optional[dict],
    ) -> httpx.Response:
        return await client.request(
            method=method,
            url=url,
            json=json_body,
            headers=BASE_HEADERS,
            timeout=self.timeout,
        )


__all__ = [
    "BASE_HEADERS",
    "REQUEST_TIMEOUT_SECONDS",
    "SHARE_USER_AGENT",
    "ShareTransport",
    "build_query_string",
    "classify_response",
    "encode_query_component",
]
