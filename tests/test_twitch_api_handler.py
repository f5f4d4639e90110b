import logging
from unittest import mock

import pytest
import requests

from tests.conftest import FakeResponse
from twitch_recorder.errors import TwitchAuthError
from twitch_recorder.services.twitch_api_handler import TwitchAPIHelper, TwitchAuthManager
from twitch_recorder.utils.constants import TWITCH_AUTH_URL, TWITCH_STREAMS_URL


def make_auth(post_response=None, token="old-token"):
    session = mock.Mock()
    if post_response is not None:
        session.post.return_value = post_response
    auth = TwitchAuthManager("cid", "csecret", session=session)
    auth.credential.access_token = token
    return auth


class TestTwitchAuthManager:
    def test_refresh_stores_access_token(self):
        auth = make_auth(FakeResponse(payload={"access_token": "abc123", "expires_in": 5000}))
        credential = auth.refresh()
        assert credential.access_token == "abc123"
        assert auth.access_token == "abc123"

    def test_refresh_posts_client_credentials_form(self):
        auth = make_auth(FakeResponse(payload={"access_token": "abc123"}))
        auth.refresh()
        args, kwargs = auth.session.post.call_args
        assert args[0] == TWITCH_AUTH_URL
        assert kwargs["data"] == {
            "client_id": "cid",
            "client_secret": "csecret",
            "grant_type": "client_credentials",
        }

    def test_missing_access_token_becomes_empty_string(self):
        auth = make_auth(FakeResponse(status_code=400, payload={"status": 400, "message": "invalid client"}))
        assert auth.refresh().access_token == ""

    def test_non_string_access_token_becomes_empty_string(self):
        auth = make_auth(FakeResponse(payload={"access_token": 12345}))
        assert auth.refresh().access_token == ""

    def test_reactive_refresh_network_failure_keeps_previous_token(self):
        auth = make_auth(token="stale")
        auth.session.post.side_effect = requests.exceptions.ConnectionError("boom")
        assert auth.refresh().access_token == "stale"

    def test_reactive_refresh_decode_failure_keeps_previous_token(self):
        auth = make_auth(FakeResponse(text="<html>bad gateway</html>"), token="stale")
        assert auth.refresh().access_token == "stale"

    def test_undecodable_token_response_is_logged_as_parse_error(self, caplog):
        response = FakeResponse(status_code=502, text="<html>bad gateway</html>")
        response.json = mock.Mock(side_effect=requests.exceptions.JSONDecodeError("Expecting value", response.text, 0))
        auth = make_auth(response, token="stale")
        with caplog.at_level(logging.ERROR):
            assert auth.refresh().access_token == "stale"
        assert "Error parsing access token response" in caplog.text
        assert "Could not request a new access token" not in caplog.text

    def test_initialize_network_failure_is_fatal(self):
        auth = make_auth(token="")
        auth.session.post.side_effect = requests.exceptions.ConnectionError("boom")
        with pytest.raises(TwitchAuthError):
            auth.initialize()

    def test_initialize_decode_failure_is_fatal(self):
        auth = make_auth(FakeResponse(text="not json"), token="")
        with pytest.raises(TwitchAuthError):
            auth.initialize()

    def test_headers_follow_latest_token(self):
        auth = make_auth(FakeResponse(payload={"access_token": "fresh"}), token="stale")
        assert auth.headers() == {"Client-ID": "cid", "Authorization": "Bearer stale"}
        auth.refresh()
        assert auth.headers() == {"Client-ID": "cid", "Authorization": "Bearer fresh"}

    def test_log_client_info_plaintext(self, caplog):
        auth = make_auth(token="tok-abcdef")
        with caplog.at_level(logging.INFO):
            auth.log_client_info()
        assert "ClientSecret: csecret" in caplog.text
        assert "AccessToken: tok-abcdef" in caplog.text
        assert any(r.levelno == logging.WARNING and "plaintext" in r.getMessage() for r in caplog.records)

    def test_log_client_info_redacted(self, caplog):
        auth = make_auth(token="tok-abcdef")
        with caplog.at_level(logging.INFO):
            auth.log_client_info(redact=True)
        assert "csecret" not in caplog.text
        assert "tok-abcdef" not in caplog.text
        assert "cdef" in caplog.text


class TestIsLive:
    def make_api(self, get_responses, retry_on_unauthorized=False):
        auth = make_auth(FakeResponse(payload={"access_token": "new-token"}))
        auth.session.get.side_effect = get_responses
        return TwitchAPIHelper(auth, retry_on_unauthorized=retry_on_unauthorized), auth

    def test_empty_data_is_offline(self):
        api, _ = self.make_api([FakeResponse(payload={"data": []})])
        assert api.is_live("somestreamer") is False

    def test_non_empty_data_is_live(self):
        api, _ = self.make_api([FakeResponse(payload={"data": [{"id": "1"}]})])
        assert api.is_live("somestreamer") is True

    def test_request_shape(self):
        api, auth = self.make_api([FakeResponse(payload={"data": []})])
        api.is_live("somestreamer")
        args, kwargs = auth.session.get.call_args
        assert args[0] == TWITCH_STREAMS_URL
        assert kwargs["params"] == {"user_login": "somestreamer"}
        assert kwargs["headers"] == {"Client-ID": "cid", "Authorization": "Bearer old-token"}

    def test_unauthorized_refreshes_once_and_reports_offline(self):
        api, auth = self.make_api([FakeResponse(status_code=401, payload={"message": "Invalid OAuth token"})])
        with mock.patch.object(auth, "refresh", wraps=auth.refresh) as refresh:
            assert api.is_live("somestreamer") is False
        assert refresh.call_count == 1
        assert auth.session.get.call_count == 1
        assert auth.access_token == "new-token"

    def test_unauthorized_retries_same_tick_when_enabled(self):
        api, auth = self.make_api(
            [
                FakeResponse(status_code=401, payload={"message": "Invalid OAuth token"}),
                FakeResponse(payload={"data": [{"id": "1"}]}),
            ],
            retry_on_unauthorized=True,
        )
        with mock.patch.object(auth, "refresh", wraps=auth.refresh) as refresh:
            assert api.is_live("somestreamer") is True
        assert refresh.call_count == 1
        second_headers = auth.session.get.call_args_list[1].kwargs["headers"]
        assert second_headers["Authorization"] == "Bearer new-token"

    def test_retry_does_not_refresh_twice(self):
        api, auth = self.make_api(
            [FakeResponse(status_code=401, payload={}), FakeResponse(status_code=401, payload={})],
            retry_on_unauthorized=True,
        )
        with mock.patch.object(auth, "refresh", wraps=auth.refresh) as refresh:
            assert api.is_live("somestreamer") is False
        assert refresh.call_count == 1

    @pytest.mark.parametrize("response", [
        FakeResponse(payload={"total": 0}),
        FakeResponse(payload={"data": "nope"}),
        FakeResponse(payload={"data": None}),
        FakeResponse(payload=["data"]),
        FakeResponse(text="{not json"),
        FakeResponse(status_code=500, text="Internal Server Error"),
    ])
    def test_malformed_or_failed_responses_are_offline(self, response):
        api, _ = self.make_api([response])
        assert api.is_live("somestreamer") is False

    def test_transport_error_is_offline(self):
        api, _ = self.make_api(requests.exceptions.Timeout("timed out"))
        assert api.is_live("somestreamer") is False


class TestLastStreamInfo:
    def test_returns_first_stream_seen_by_is_live(self):
        auth = make_auth()
        auth.session.get.return_value = FakeResponse(payload={"data": [
            {"user_login": "somestreamer", "title": "Speedruns", "game_name": "Celeste",
             "started_at": "2024-05-01T12:00:00Z", "type": "live", "viewer_count": 12},
        ]})
        api = TwitchAPIHelper(auth)
        assert api.is_live("somestreamer") is True

        info = api.last_stream_info()

        assert info.title == "Speedruns"
        assert info.game_name == "Celeste"
        assert info.type == "live"
        assert auth.session.get.call_count == 1

    def test_none_before_any_check(self):
        auth = make_auth()
        assert TwitchAPIHelper(auth).last_stream_info() is None
        auth.session.get.assert_not_called()

    def test_offline_returns_none(self):
        auth = make_auth()
        auth.session.get.return_value = FakeResponse(payload={"data": []})
        api = TwitchAPIHelper(auth)
        api.is_live("somestreamer")
        assert api.last_stream_info() is None

    def test_failed_check_clears_previous_stream(self):
        auth = make_auth(FakeResponse(payload={"access_token": "new-token"}))
        auth.session.get.side_effect = [
            FakeResponse(payload={"data": [{"title": "Speedruns"}]}),
            FakeResponse(status_code=401, payload={}),
        ]
        api = TwitchAPIHelper(auth)
        api.is_live("somestreamer")
        api.is_live("somestreamer")
        assert api.last_stream_info() is None
