# tests/test_http_client.py

import asyncio
import json
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter

from api.attendance_api import ApiError
from api.http_client import HttpAttendanceApi
from core.config import Settings
from models.attendance_query import AttendanceQuery
from models.attendance_record import PersonType

BASE_URL = "http://api.test/api/v1"


class ScriptedAdapter(BaseAdapter):
    """
    Answers each request with the next scripted reply and records what was sent.

    A reply is a (status_code, body) tuple, or an exception instance to raise.
    """

    def __init__(self, replies):
        super().__init__()
        self.replies = list(replies)
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append(request)
        reply = self.replies.pop(0)

        if isinstance(reply, Exception):
            raise reply

        status_code, body = reply
        response = requests.Response()
        response.status_code = status_code
        response.reason = "scripted"
        response.url = request.url
        response.request = request
        response._content = b"" if body is None else json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
        return response

    def close(self):
        pass


def make_client(replies, access_token="token-1", refresh_token=None):
    adapter = ScriptedAdapter(replies)
    session = requests.Session()
    session.mount("http://", adapter)
    settings = Settings(
        api_base_url=BASE_URL + "/",
        access_token=access_token,
        refresh_token=refresh_token,
    )
    return HttpAttendanceApi(settings, session), adapter


def sent_json(request):
    return json.loads(request.body) if request.body else None


RECORD_BODY = {
    "id": "a1",
    "personId": "st-1",
    "personType": "Student",
    "sessionId": "sess-1",
    "present": False,
    "markedBy": "trainer-1",
    "markedAt": "2025-03-01T09:30:00Z",
}


# === routes ===


def test_list_attendance_sends_filters():
    client, adapter = make_client(
        [(200, {"data": [RECORD_BODY], "page": 2, "pageSize": 25, "total": 26})]
    )
    query = AttendanceQuery(session_id="sess-1", person_type=PersonType.STUDENT, page=2, page_size=25)

    page = asyncio.run(client.list_attendance(query))

    request = adapter.sent[0]
    url = urlsplit(request.url)
    assert request.method == "GET"
    assert url.path == "/api/v1/attendance"
    assert parse_qs(url.query) == {
        "sessionId": ["sess-1"],
        "personType": ["Student"],
        "page": ["2"],
        "pageSize": ["25"],
    }
    assert request.headers["Authorization"] == "Bearer token-1"
    assert page.total_pages == 2
    assert page.records[0].edit_key == "a1"
    assert not page.records[0].is_present


def test_session_roster_route():
    client, adapter = make_client(
        [(200, {"teachers": [{"id": "t1", "name": "Fatima Ali", "attendance": None}], "students": []})]
    )

    roster = asyncio.run(client.get_session_attendance("sess-9"))

    assert adapter.sent[0].url == f"{BASE_URL}/attendance/sessions/sess-9"
    assert roster.session_id == "sess-9"
    assert roster.teachers[0].edit_key == "Teacher:t1"


def test_bulk_upsert_accepts_no_content():
    client, adapter = make_client([(204, None)])
    payload = {"students": [{"studentId": "st-1", "present": True}]}

    result = asyncio.run(client.bulk_upsert("sess-1", payload))

    assert result is None
    assert adapter.sent[0].method == "PUT"
    assert sent_json(adapter.sent[0]) == payload


def test_toggle_parses_updated_record():
    client, adapter = make_client([(200, RECORD_BODY)])

    record = asyncio.run(client.toggle_attendance("a1"))

    assert adapter.sent[0].method == "PATCH"
    assert adapter.sent[0].url == f"{BASE_URL}/attendance/a1"
    assert record.id == "a1"
    assert record.marked_at.year == 2025


def test_no_token_sends_no_authorization_header():
    client, adapter = make_client([(204, None)], access_token=None)

    asyncio.run(client.bulk_upsert("sess-1", {}))

    assert "Authorization" not in adapter.sent[0].headers


# === failures ===


def test_server_message_becomes_api_error():
    client, _ = make_client([(422, {"message": "Session is closed"})])

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.bulk_upsert("sess-1", {}))

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "Session is closed"


def test_error_without_body_uses_status():
    client, _ = make_client([(500, None)])

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.toggle_attendance("a1"))

    assert str(exc_info.value) == "Request failed (HTTP 500)"


def test_network_error_is_wrapped():
    client, _ = make_client([requests.ConnectionError("connection refused")])

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.toggle_attendance("a1"))

    assert exc_info.value.status_code is None
    assert exc_info.value.message.startswith("Network error:")


def test_malformed_roster_is_an_api_error():
    client, _ = make_client([(200, {"teachers": [{"name": "no id"}]})])

    with pytest.raises(ApiError, match="Malformed session roster"):
        asyncio.run(client.get_session_attendance("sess-1"))


# === token refresh ===


def test_unauthorized_request_is_retried_after_refresh():
    client, adapter = make_client(
        [
            (401, {"message": "Token expired"}),
            (200, {"accessToken": "token-2", "refreshToken": "refresh-2"}),
            (200, RECORD_BODY),
        ],
        refresh_token="refresh-1",
    )

    record = asyncio.run(client.toggle_attendance("a1"))

    methods = [request.method for request in adapter.sent]
    assert methods == ["PATCH", "POST", "PATCH"]
    assert sent_json(adapter.sent[1]) == {"refreshToken": "refresh-1"}
    assert adapter.sent[2].headers["Authorization"] == "Bearer token-2"
    assert client.access_token == "token-2"
    assert client.refresh_token == "refresh-2"
    assert record.id == "a1"


def test_failed_refresh_surfaces_original_error():
    client, adapter = make_client(
        [
            (401, {"message": "Token expired"}),
            (401, {"message": "Refresh token revoked"}),
        ],
        refresh_token="refresh-1",
    )

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(client.toggle_attendance("a1"))

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Token expired"
    assert len(adapter.sent) == 2
    assert client.access_token == "token-1"


def test_unauthorized_without_refresh_token_is_not_retried():
    client, adapter = make_client([(401, {"error": "Unauthorized"})])

    with pytest.raises(ApiError, match="Unauthorized"):
        asyncio.run(client.toggle_attendance("a1"))

    assert len(adapter.sent) == 1
