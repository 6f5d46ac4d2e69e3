"""
Token provider for the classroom service: OAuth2 authorization URL, code exchange,
refresh, and handing out a valid access token for a linked user.

The provider owns the persisted token record; a refreshed token is written back
in one transaction before it is returned.
"""
import functools
import logging
from collections import namedtuple
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from requests import RequestException

from classroom_hub.core.config import DEFAULT_SCOPES
from classroom_hub.core.errors import ExchangeFailed, InvalidToken, RefreshFailed

from . import service
from .models import utc_now

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

TokenSet = namedtuple("TokenSet", ["access_token", "refresh_token", "expiry"], defaults=(None, None))


class GoogleTokenProvider:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: Optional[List[str]] = None,
        expiry_skew_seconds: int = 60,
        request_timeout: float = 10,
        token_uri: str = GOOGLE_TOKEN_URI,
        logger: Optional[logging.Logger] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes or DEFAULT_SCOPES)
        self.expiry_skew = timedelta(seconds=expiry_skew_seconds)
        self.request_timeout = request_timeout
        self.token_uri = token_uri
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: Dict[str, Any], logger: Optional[logging.Logger] = None) -> "GoogleTokenProvider":
        """Build from the classroom config section."""
        return cls(
            client_id=config.get("client_id") or "",
            client_secret=config.get("client_secret") or "",
            redirect_uri=config.get("redirect_uri") or "",
            scopes=config.get("scopes"),
            expiry_skew_seconds=int(config.get("expiry_skew_seconds", 60)),
            request_timeout=float(config.get("request_timeout", 10)),
            logger=logger,
        )

    def _client_config(self) -> Dict[str, Any]:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": self.token_uri,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _build_flow(self, scopes: Optional[List[str]] = None) -> Flow:
        # No PKCE verifier: the code is exchanged by a different request than the one that built the URL
        return Flow.from_client_config(
            self._client_config(),
            scopes=scopes or self.scopes,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def get_authorization_url(self, scopes: Optional[List[str]] = None, state: Optional[str] = None) -> str:
        """Consent URL asking for offline access, so a refresh token is issued."""
        flow = self._build_flow(scopes)
        kwargs = {"access_type": "offline", "prompt": "consent"}
        if state:
            kwargs["state"] = state
        url, _ = flow.authorization_url(**kwargs)
        return url

    def exchange_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens. Raises ExchangeFailed."""
        if not code:
            raise ExchangeFailed("Missing authorization code")
        flow = self._build_flow()
        try:
            flow.fetch_token(code=code, timeout=self.request_timeout)
        except (OAuth2Error, RequestException, ValueError, Warning) as e:
            self.logger.error(f"Authorization code exchange failed: {e}")
            raise ExchangeFailed("Failed to exchange authorization code for tokens", cause=e) from e
        creds = flow.credentials
        return TokenSet(creds.token, creds.refresh_token, creds.expiry)

    def refresh(self, refresh_token: str) -> TokenSet:
        """Get a new access token. Raises RefreshFailed."""
        if not refresh_token:
            raise RefreshFailed("No refresh token available")
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.scopes,
        )
        try:
            creds.refresh(functools.partial(Request(), timeout=self.request_timeout))
        except (RefreshError, TransportError) as e:
            self.logger.error(f"Access token refresh failed: {e}")
            raise RefreshFailed("Failed to refresh access token", cause=e) from e
        return TokenSet(creds.token, creds.refresh_token or refresh_token, creds.expiry)

    def is_expired(self, expiry: Optional[datetime]) -> bool:
        """Unknown expiry counts as valid; upstream rejects the token if it is not."""
        if expiry is None:
            return False
        return utc_now() >= expiry - self.expiry_skew

    def get_valid_token(self, user_id: str) -> str:
        """
        Return a usable access token for the user, refreshing and persisting it
        if it has expired. Raises InvalidToken when the account must be re-linked.
        """
        link = service.get_link(user_id)
        if link is None or not link.access_token:
            raise InvalidToken("Classroom account not linked")
        if not self.is_expired(link.expiry):
            return link.access_token
        if not link.refresh_token:
            raise InvalidToken("Access token expired")
        self.logger.info(f"Access token expired for user {user_id}, refreshing")
        try:
            tokens = self.refresh(link.refresh_token)
        except RefreshFailed as e:
            raise InvalidToken("Access token expired and could not be refreshed", cause=e) from e
        service.save_link(user_id, tokens)
        return tokens.access_token

    def refresh_for_user(self, user_id: str) -> TokenSet:
        """Force a refresh of the stored token. Raises InvalidToken or RefreshFailed."""
        link = service.get_link(user_id)
        if link is None or not link.refresh_token:
            raise InvalidToken("No refresh token available")
        tokens = self.refresh(link.refresh_token)
        service.save_link(user_id, tokens)
        return tokens
