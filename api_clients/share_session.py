"""
Session management for the Dexcom Share publisher account
"""
import logging
from typing import Optional

from models.share_models import (
    AuthenticatePublisherAccountRequest,
    LoginPublisherAccountByIdRequest,
)
from share_glucose.errors import AuthenticationError
from share_glucose.models import ZERO_SESSION_ID, Credentials, Region, Session

from .share_transport import ShareTransport

# App registration id the service expects from Share clients; not a secret.
APPLICATION_ID = "d89443d2-327c-4a6f-89e5-496bbb0317db"

BASE_URLS = {
    Region.US: "https://share2.dexcom.com",
    Region.OUS: "https://shareous1.dexcom.com",
}

AUTHENTICATE_ENDPOINT = "/ShareWebServices/Services/General/AuthenticatePublisherAccount"
LOGIN_ENDPOINT = "/ShareWebServices/Services/General/LoginPublisherAccountById"


class SessionManager:
    """
    Owns the credentials and the current session, and runs the two-step login
    """

    def __init__(self, credentials: Credentials, transport: ShareTransport):
        """
        Initialize the session manager

        Args:
            credentials: Account credentials; never mutated
            transport: Transport used for both login requests
        """
        self.credentials = credentials
        self.transport = transport
        self.base_url = BASE_URLS[credentials.region]
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def has_valid_session(self) -> bool:
        return self._session is not None and self._session.is_valid

    def invalidate(self) -> None:
        """
        Forget the current session so the next call logs in again
        """
        if self._session is not None:
            logging.info("Invalidating Share session")
        self._session = None

    async def ensure_authenticated(self) -> Session:
        """
        Return the current session, logging in first when there is none

        Returns:
            Valid Session
        """
        if self.has_valid_session():
            return self._session
        logging.debug("No Share session, authenticating...")
        return await self.authenticate()

    async def authenticate(self) -> Session:
        """
        Run AuthenticatePublisherAccount then LoginPublisherAccountById

        Returns:
            Freshly established Session

        Raises:
            AuthenticationError: If credentials are missing or an identity response is malformed
            ShareClientError: Any transport error, propagated unchanged
        """
        self._session = None
        try:
            return await self._authenticate()
        except Exception as e:
            logging.error(f"Share authentication failed: {e}")
            self._session = None
            raise

    async def _authenticate(self) -> Session:
        if not self.credentials.is_complete():
            raise AuthenticationError("Username and password are required")

        logging.info(f"Authenticating with Share ({self.credentials.region.value} region)...")
        auth_request = AuthenticatePublisherAccountRequest(
            accountName=self.credentials.username,
            password=self.credentials.password,
            applicationId=APPLICATION_ID,
        )
        account_id = await self.transport.send(
            f"{self.base_url}{AUTHENTICATE_ENDPOINT}",
            "POST",
            body=auth_request.model_dump(),
        )
        if not isinstance(account_id, str) or not account_id:
            raise AuthenticationError("Invalid account ID received")
        logging.debug("Account ID received")

        login_request = LoginPublisherAccountByIdRequest(
            accountId=account_id,
            password=self.credentials.password,
            applicationId=APPLICATION_ID,
        )
        session_id = await self.transport.send(
            f"{self.base_url}{LOGIN_ENDPOINT}",
            "POST",
            body=login_request.model_dump(),
        )
        if not isinstance(session_id, str) or not session_id or session_id == ZERO_SESSION_ID:
            raise AuthenticationError("Invalid session ID received")

        self._session = Session(account_id=account_id, session_id=session_id)
        logging.info("Share authentication successful")
        return self._session
