import logging

import requests

from twitch_recorder.errors import TwitchAuthError
from twitch_recorder.models import Credential, StreamsResponse
from twitch_recorder.utils.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    HEADER_AUTHORIZATION,
    HEADER_CLIENT_ID,
    TWITCH_AUTH_URL,
    TWITCH_STREAMS_URL,
)
from twitch_recorder.utils.formatters import mask_secret

logger = logging.getLogger(__name__)


def _log_api_error(e, response_obj, context_msg):
    logger.error(f"{context_msg}: {e}")
    if response_obj is not None and hasattr(response_obj, 'text'):
        logger.error(f"Raw response text: {response_obj.text}")
    elif hasattr(e, 'response') and e.response is not None and hasattr(e.response, 'text'):
        logger.error(f"Response content: {e.response.text}")


class TwitchAuthManager:
    """Owns the app access token and refreshes it with the client-credentials grant.

    There is no expiry tracking: the token is refreshed only when the API
    rejects it (or on startup).
    """

    def __init__(self, client_id: str, client_secret: str, session: requests.Session = None,
                 timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS):
        self.credential = Credential(client_id=client_id, client_secret=client_secret)
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def access_token(self) -> str:
        return self.credential.access_token

    def initialize(self) -> Credential:
        return self.refresh(fatal=True)

    def refresh(self, fatal: bool = False) -> Credential:
        logger.info("TwitchAPI: Attempting to fetch/refresh App Access Token...")
        body = {
            "client_id": self.credential.client_id,
            "client_secret": self.credential.client_secret,
            "grant_type": "client_credentials",
        }
        response_obj = None
        try:
            response_obj = self.session.post(TWITCH_AUTH_URL, data=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            _log_api_error(e, response_obj, "TwitchAPI: Could not request a new access token")
            if fatal:
                raise TwitchAuthError(f"Could not request a new access token: {e}") from e
            return self.credential

        try:
            data = response_obj.json()
        except ValueError as e:
            _log_api_error(e, response_obj, "TwitchAPI: Error parsing access token response")
            if fatal:
                raise TwitchAuthError(f"Error parsing access token response: {e}") from e
            return self.credential

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(access_token, str):
            logger.warning(f"TwitchAPI: Access token not found in response (HTTP {response_obj.status_code}).")
            access_token = ""

        self.credential.access_token = access_token
        if access_token:
            logger.info(f"TwitchAPI: Access token refreshed: {access_token}")
        else:
            logger.error("TwitchAPI: Error! Access token is empty string.")
        return self.credential

    def headers(self) -> dict:
        return {
            HEADER_CLIENT_ID: self.credential.client_id,
            HEADER_AUTHORIZATION: f"Bearer {self.credential.access_token}",
        }

    def log_client_info(self, redact: bool = False):
        logger.warning("TwitchAPI: Client credentials are about to be written to the log"
                       + (" (redacted)." if redact else " in plaintext. Set 'redact_credentials' to mask them."))
        secret = mask_secret(self.credential.client_secret) if redact else self.credential.client_secret
        token = mask_secret(self.credential.access_token) if redact else self.credential.access_token
        logger.info("Twitch Info:")
        logger.info(f"ClientID: {self.credential.client_id}")
        logger.info(f"ClientSecret: {secret}")
        logger.info(f"AccessToken: {token}")


class TwitchAPIHelper:
    def __init__(self, auth: TwitchAuthManager, timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
                 retry_on_unauthorized: bool = False):
        self.auth = auth
        self.timeout = timeout
        self.retry_on_unauthorized = retry_on_unauthorized
        self.last_streams = None

    def _fetch_streams(self, channel_name: str, allow_refresh: bool = True):
        response_obj = None
        try:
            response_obj = self.auth.session.get(
                TWITCH_STREAMS_URL,
                params={"user_login": channel_name},
                headers=self.auth.headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            _log_api_error(e, response_obj, f"TwitchAPI: Error sending live status request for '{channel_name}'")
            return None

        if response_obj.status_code == 401:
            logger.warning(f"TwitchAPI: Live status request for '{channel_name}' returned 401 (Unauthorized).")
            if not allow_refresh:
                return None
            self.auth.refresh()
            if self.retry_on_unauthorized:
                logger.info(f"TwitchAPI: Retrying live status request for '{channel_name}' with the refreshed token.")
                return self._fetch_streams(channel_name, allow_refresh=False)
            return None

        if not response_obj.ok:
            logger.error(f"TwitchAPI: Live status request for '{channel_name}' failed with HTTP {response_obj.status_code}: {response_obj.text}")
            return None

        try:
            return StreamsResponse.from_dict(response_obj.json())
        except ValueError as e:
            _log_api_error(e, response_obj, f"TwitchAPI: Error parsing live status response for '{channel_name}'")
            return None

    def is_live(self, channel_name: str) -> bool:
        streams = self._fetch_streams(channel_name)
        self.last_streams = streams
        if streams is None:
            return False
        return streams.is_live

    def last_stream_info(self):
        """Details of the stream seen by the latest is_live call; never sends a request."""
        if self.last_streams is None:
            return None
        try:
            return self.last_streams.first_stream()
        except ValueError as e:
            logger.error(f"TwitchAPI: Error parsing stream entry: {e}")
            return None
