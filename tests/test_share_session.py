import pytest

from api_clients.share_session import (
    APPLICATION_ID,
    AUTHENTICATE_ENDPOINT,
    LOGIN_ENDPOINT,
    SessionManager,
)
from share_glucose.errors import AuthenticationError, HttpError, NetworkError, ShareErrorCode
from share_glucose.models import ZERO_SESSION_ID, Credentials, Region, Session


class _StubTransport:
    """Returns queued results in order and records every call."""

    def __init__(self, *results):
        self._results = list(results)
        self.calls = []

    async def send(self, url, method="GET", body=None, query_params=None):
        self.calls.append((url, method, body))
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _credentials(**overrides) -> Credentials:
    values = {"username": "user", "password": "secret", "region": "us"}
    values.update(overrides)
    return Credentials.create(**values)


@pytest.mark.asyncio
async def test_authenticate_runs_both_steps_in_order():
    transport = _StubTransport("account-1", "session-1")
    manager = SessionManager(_credentials(), transport)

    session = await manager.authenticate()

    assert session == Session(account_id="account-1", session_id="session-1")
    assert manager.has_valid_session()
    (auth_url, auth_method, auth_body), (login_url, _, login_body) = transport.calls
    assert auth_url == "https://share2.dexcom.com" + AUTHENTICATE_ENDPOINT
    assert auth_method == "POST"
    assert auth_body == {"accountName": "user", "password": "secret", "applicationId": APPLICATION_ID}
    assert login_url == "https://share2.dexcom.com" + LOGIN_ENDPOINT
    assert login_body == {"accountId": "account-1", "password": "secret", "applicationId": APPLICATION_ID}


@pytest.mark.asyncio
async def test_authenticate_requires_username_and_password():
    transport = _StubTransport()
    manager = SessionManager(_credentials(password=""), transport)

    with pytest.raises(AuthenticationError):
        await manager.authenticate()
    assert transport.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("account_id", ["", None, 42, ["account"]])
async def test_authenticate_rejects_malformed_account_id(account_id):
    manager = SessionManager(_credentials(), _StubTransport(account_id))

    with pytest.raises(AuthenticationError):
        await manager.authenticate()
    assert manager.session is None


@pytest.mark.asyncio
@pytest.mark.parametrize("session_id", ["", None, ZERO_SESSION_ID])
async def test_authenticate_rejects_missing_or_zero_session_id(session_id):
    manager = SessionManager(_credentials(), _StubTransport("account-1", session_id))

    with pytest.raises(AuthenticationError):
        await manager.authenticate()
    assert manager.session is None


@pytest.mark.asyncio
async def test_transport_errors_propagate_unchanged_and_clear_session():
    error = HttpError(500, '{"Code":"AccountPasswordInvalid"}', ShareErrorCode.ACCOUNT_PASSWORD_INVALID)
    transport = _StubTransport("account-1", "session-1", error)
    manager = SessionManager(_credentials(), transport)
    await manager.authenticate()

    with pytest.raises(HttpError) as excinfo:
        await manager.authenticate()

    assert excinfo.value is error
    assert manager.session is None


@pytest.mark.asyncio
async def test_ensure_authenticated_reuses_valid_session():
    transport = _StubTransport("account-1", "session-1")
    manager = SessionManager(_credentials(), transport)

    first = await manager.ensure_authenticated()
    second = await manager.ensure_authenticated()

    assert first is second
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_invalidate_forces_a_new_login():
    transport = _StubTransport("account-1", "session-1", "account-1", "session-2")
    manager = SessionManager(_credentials(), transport)
    await manager.ensure_authenticated()

    manager.invalidate()
    session = await manager.ensure_authenticated()

    assert session.session_id == "session-2"
    assert len(transport.calls) == 4


@pytest.mark.asyncio
async def test_network_error_during_second_step_leaves_no_partial_session():
    manager = SessionManager(_credentials(), _StubTransport("account-1", NetworkError("down")))

    with pytest.raises(NetworkError):
        await manager.authenticate()
    assert manager.session is None


def test_base_url_follows_region():
    assert SessionManager(_credentials(region="USA"), _StubTransport()).base_url == "https://share2.dexcom.com"
    manager = SessionManager(_credentials(region="outside us"), _StubTransport())
    assert manager.credentials.region is Region.OUS
    assert manager.base_url == "https://shareous1.dexcom.com"
