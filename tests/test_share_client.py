import asyncio
from datetime import datetime, timezone

import httpx
import pandas as pd
import pytest
import respx

from api_clients.share_client import GlucoseClient, fetch_history_frame
from share_glucose.config import ShareConfig
from share_glucose.errors import (
    AuthenticationError,
    HttpError,
    NoDataError,
    RateLimitedError,
    SessionRenewalFailedError,
)
from share_glucose.models import Credentials, GlucoseUnit, TrendCode
from share_glucose.monitor import GlucoseMonitor

BASE_URL = "https://shareous1.dexcom.com"
AUTH_URL = f"{BASE_URL}/ShareWebServices/Services/General/AuthenticatePublisherAccount"
LOGIN_URL = f"{BASE_URL}/ShareWebServices/Services/General/LoginPublisherAccountById"
READ_URL = f"{BASE_URL}/ShareWebServices/Services/Publisher/ReadPublisherLatestGlucoseValues"


def _session_expired() -> httpx.Response:
    return httpx.Response(500, json={"Code": "SessionNotValid", "Message": "Session not active"})


def _raw(epoch_ms: int, value: int, trend: str = "Flat") -> dict:
    return {"WT": f"Date({epoch_ms})", "ST": f"Date({epoch_ms})", "DT": f"Date({epoch_ms}+0000)", "Value": value, "Trend": trend}


def _client(unit: str = "mg/dL") -> GlucoseClient:
    return GlucoseClient(Credentials.create("user", "secret", "ous", unit))


def _mock_login():
    auth = respx.post(AUTH_URL).mock(return_value=httpx.Response(200, json="account-1"))
    login = respx.post(LOGIN_URL).mock(return_value=httpx.Response(200, json="session-1"))
    return auth, login


@pytest.mark.asyncio
@respx.mock
async def test_get_latest_glucose_authenticates_and_formats():
    auth, login = _mock_login()
    read = respx.get(url__startswith=READ_URL).mock(
        return_value=httpx.Response(200, json=[_raw(1_000_000_000_000, 180)])
    )

    reading = await _client().get_latest_glucose()

    assert auth.call_count == 1
    assert login.call_count == 1
    params = read.calls.last.request.url.params
    assert params["sessionId"] == "session-1"
    assert params["minutes"] == "1440"
    assert params["maxCount"] == "1"
    assert reading.value == 180
    assert reading.unit is GlucoseUnit.MG_DL
    assert reading.trend is TrendCode.FLAT
    assert reading.formatted_delta == "0.0"
    assert reading.timestamp == datetime(2001, 9, 9, 1, 46, 40, tzinfo=timezone.utc)


@pytest.mark.asyncio
@respx.mock
async def test_consecutive_latest_calls_share_memory():
    _mock_login()
    respx.get(url__startswith=READ_URL).mock(
        side_effect=[
            httpx.Response(200, json=[_raw(1_000_000_000_000, 180)]),
            httpx.Response(200, json=[_raw(1_000_000_300_000, 150)]),
        ]
    )
    client = _client()

    await client.get_latest_glucose()
    second = await client.get_latest_glucose()

    assert second.trend is TrendCode.SINGLE_DOWN
    assert second.formatted_delta == "-30.0"
    assert client.memory.previous_raw_reading.Value == 150


@pytest.mark.asyncio
@respx.mock
async def test_session_expired_retries_once_then_succeeds():
    auth, _ = _mock_login()
    read = respx.get(url__startswith=READ_URL).mock(
        side_effect=[_session_expired(), httpx.Response(200, json=[_raw(1_000_000_000_000, 110)])]
    )

    reading = await _client().get_latest_glucose()

    assert reading.value == 110
    assert auth.call_count == 2
    assert read.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_session_expired_twice_is_terminal():
    auth, _ = _mock_login()
    read = respx.get(url__startswith=READ_URL).mock(side_effect=[_session_expired(), _session_expired()])
    client = _client()

    with pytest.raises(SessionRenewalFailedError):
        await client.get_latest_glucose()

    assert auth.call_count == 2
    assert read.call_count == 2
    assert client.sessions.session is None


@pytest.mark.asyncio
@respx.mock
async def test_empty_latest_raises_no_data():
    _mock_login()
    respx.get(url__startswith=READ_URL).mock(return_value=httpx.Response(200, json=[]))

    with pytest.raises(NoDataError):
        await _client().get_latest_glucose()


@pytest.mark.asyncio
@respx.mock
async def test_rate_limit_propagates_without_retry():
    auth, _ = _mock_login()
    read = respx.get(url__startswith=READ_URL).mock(return_value=httpx.Response(429, text="Too many"))

    with pytest.raises(RateLimitedError):
        await _client().get_latest_glucose()

    assert auth.call_count == 1
    assert read.call_count == 1


@pytest.mark.asyncio
async def test_bad_password_surfaces_http_error():
    with respx.mock(assert_all_called=False) as router:
        router.post(AUTH_URL).mock(
            return_value=httpx.Response(500, json={"Code": "AccountPasswordInvalid", "Message": "bad"})
        )
        read = router.get(url__startswith=READ_URL)

        with pytest.raises(HttpError) as excinfo:
            await _client().get_latest_glucose()

    assert excinfo.value.code.value == "AccountPasswordInvalid"
    assert not read.called


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_request():
    with respx.mock(assert_all_called=False) as router:
        auth = router.post(AUTH_URL)
        client = GlucoseClient(Credentials.create("", "", "ous"))

        with pytest.raises(AuthenticationError):
            await client.get_latest_glucose()

    assert not auth.called


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, expected_value",
    [
        (b'[{"WT":"Date(1000000000000)","ST":1000000000000,"DT":1000000000000,"Value":140,"Trend":"Flat"}]', 140),
        (b'[{"WT":"Date(1000000000000)","Value":1e999,"Trend":"Flat"}]', 0),
    ],
)
@respx.mock
async def test_loose_reading_fields_are_coerced(body, expected_value):
    _mock_login()
    respx.get(url__startswith=READ_URL).mock(return_value=httpx.Response(200, content=body))
    monitor = GlucoseMonitor(ShareConfig(username="user", password="secret"))

    update = await monitor.poll_once()

    assert update.ok
    assert update.reading.raw_value == expected_value


@pytest.mark.asyncio
@respx.mock
async def test_historical_empty_returns_empty_list():
    _mock_login()
    respx.get(url__startswith=READ_URL).mock(return_value=httpx.Response(200, json=[]))

    assert await _client().get_historical_glucose(60, 12) == []


@pytest.mark.asyncio
@respx.mock
async def test_historical_sorts_converts_and_skips_smoothing():
    _mock_login()
    read = respx.get(url__startswith=READ_URL).mock(
        return_value=httpx.Response(
            200,
            json=[
                _raw(1_000_000_600_000, 180, "SingleDown"),
                _raw(1_000_000_000_000, 90, "Flat"),
                _raw(1_000_000_300_000, 126, "FortyFiveUp"),
            ],
        )
    )
    client = _client("mmol/L")

    readings = await client.get_historical_glucose(minutes=30, max_count=3)

    params = read.calls.last.request.url.params
    assert params["minutes"] == "30"
    assert params["maxCount"] == "3"
    assert [r.value for r in readings] == [5.0, 7.0, 10.0]
    assert [r.trend for r in readings] == [TrendCode.FLAT, TrendCode.FORTY_FIVE_UP, TrendCode.SINGLE_DOWN]
    assert all(r.delta is None for r in readings)
    assert client.memory.previous_raw_reading is None


@pytest.mark.asyncio
@respx.mock
async def test_historical_uses_bounded_retry():
    auth, _ = _mock_login()
    respx.get(url__startswith=READ_URL).mock(side_effect=[_session_expired(), _session_expired()])

    with pytest.raises(SessionRenewalFailedError):
        await _client().get_historical_glucose()

    assert auth.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_concurrent_calls_authenticate_once():
    auth, _ = _mock_login()
    respx.get(url__startswith=READ_URL).mock(
        return_value=httpx.Response(200, json=[_raw(1_000_000_000_000, 120)])
    )
    client = _client()

    await asyncio.gather(client.get_latest_glucose(), client.get_historical_glucose())

    assert auth.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_fetch_history_frame_and_from_config():
    _mock_login()
    respx.get(url__startswith=READ_URL).mock(
        return_value=httpx.Response(200, json=[_raw(1_000_000_300_000, 130), _raw(1_000_000_000_000, 120)])
    )
    client = GlucoseClient.from_config(ShareConfig(username="user", password="secret"))

    frame = await fetch_history_frame(client, 10, 2)

    assert isinstance(frame, pd.DataFrame)
    assert frame["glucose_mg_dL"].tolist() == [120, 130]
