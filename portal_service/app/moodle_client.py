# portal_service/app/moodle_client.py

import logging

import requests

from .config import MOODLE_TIMEOUT, MOODLE_URL
from .exceptions import RemoteError, RemoteUnavailable

logger = logging.getLogger(__name__)


class MoodleClient:
    """Stateless wrapper around the Moodle REST web-service endpoint.

    Every call forwards the user's token unmodified and returns the decoded
    JSON body. Filtering and interpretation are left to the caller.
    """

    def __init__(self, token, base_url=MOODLE_URL, timeout=MOODLE_TIMEOUT, session=None):
        self.token = token
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def call(self, wsfunction, **params):
        query = {
            "wstoken": self.token,
            "wsfunction": wsfunction,
            "moodlewsrestformat": "json",
        }
        query.update(params)
        try:
            response = self.session.get(self.base_url, params=query, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RemoteUnavailable(f"{wsfunction}: {e}") from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise RemoteError(
                f"{wsfunction}: HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(
                f"{wsfunction}: malformed response body",
                status_code=response.status_code,
                body=response.text,
            ) from e

        # Moodle reports web-service faults as 200 with an exception envelope
        if isinstance(data, dict) and "exception" in data:
            raise RemoteError(
                f"{wsfunction}: {data.get('errorcode') or data['exception']}",
                status_code=response.status_code,
                body=data,
            )

        logger.debug("Moodle call %s succeeded", wsfunction)
        return data

    def get_assignments(self):
        return self.call("mod_assign_get_assignments")

    def get_site_info(self):
        return self.call("core_webservice_get_site_info")

    def get_users_courses(self, user_id):
        return self.call("core_enrol_get_users_courses", userid=user_id)

    def get_grade_items(self, user_id, course_id):
        return self.call("gradereport_user_get_grade_items", courseid=course_id, userid=user_id)
