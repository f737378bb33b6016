"""Unit tests for the Moodle web-service gateway."""

import json
from unittest.mock import Mock

import pytest
import requests

from portal_service.app.exceptions import RemoteError, RemoteUnavailable
from portal_service.app.moodle_client import MoodleClient

BASE_URL = "https://moodle.example.edu/webservice/rest/server.php"


def make_response(status_code=200, body=None, text=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = BASE_URL
    response.encoding = "utf-8"
    if text is None:
        text = json.dumps(body)
    response._content = text.encode("utf-8")
    return response


def make_client(response=None, error=None):
    session = Mock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return MoodleClient("T1", base_url=BASE_URL, timeout=5, session=session), session


class TestMoodleClientCall:
    """Tests for MoodleClient.call."""

    def test_sends_token_function_and_format(self) -> None:
        client, session = make_client(make_response(body={"courses": []}))

        result = client.get_assignments()

        assert result == {"courses": []}
        session.get.assert_called_once_with(
            BASE_URL,
            params={
                "wstoken": "T1",
                "wsfunction": "mod_assign_get_assignments",
                "moodlewsrestformat": "json",
            },
            timeout=5,
        )

    def test_extra_parameters_are_forwarded(self) -> None:
        client, session = make_client(make_response(body={"usergrades": []}))

        client.get_grade_items(42, 5)

        params = session.get.call_args.kwargs["params"]
        assert params["wsfunction"] == "gradereport_user_get_grade_items"
        assert params["userid"] == 42
        assert params["courseid"] == 5

    def test_users_courses_passes_userid(self) -> None:
        client, session = make_client(make_response(body=[]))

        assert client.get_users_courses(42) == []
        assert session.get.call_args.kwargs["params"]["userid"] == 42

    @pytest.mark.parametrize("error", [
        requests.ConnectionError("refused"),
        requests.Timeout("too slow"),
    ])
    def test_network_failure_is_remote_unavailable(self, error) -> None:
        client, _ = make_client(error=error)

        with pytest.raises(RemoteUnavailable):
            client.get_site_info()

    def test_error_status_is_remote_error_with_body(self) -> None:
        client, _ = make_client(make_response(status_code=503, text="maintenance"))

        with pytest.raises(RemoteError) as exc_info:
            client.get_site_info()

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "maintenance"

    def test_malformed_body_is_remote_error(self) -> None:
        client, _ = make_client(make_response(text="<html>not json</html>"))

        with pytest.raises(RemoteError) as exc_info:
            client.get_assignments()

        assert exc_info.value.body == "<html>not json</html>"

    def test_moodle_exception_envelope_is_remote_error(self) -> None:
        envelope = {
            "exception": "moodle_exception",
            "errorcode": "invalidtoken",
            "message": "Invalid token - token not found",
        }
        client, _ = make_client(make_response(body=envelope))

        with pytest.raises(RemoteError, match="invalidtoken") as exc_info:
            client.get_assignments()

        assert exc_info.value.body == envelope
