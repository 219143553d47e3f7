# api/http_client.py

"""
HTTP implementation of `AttendanceApi` on top of `requests`.

Routes:
    GET   /attendance                  -> paginated list (query string filters)
    GET   /attendance/sessions/{id}    -> full session roster
    PUT   /attendance/sessions/{id}    -> bulk upsert of presence values
    PATCH /attendance/{id}             -> flip presence of one record
    POST  /auth/refresh                -> exchange a refresh token for a new token pair

Requests are blocking, so each call runs in a worker thread via `asyncio.to_thread`. This
keeps the event loop responsive and lets the committer fan out toggle calls concurrently.

Authentication:
    - The access token is sent as a Bearer header when present.
    - On a 401, if a refresh token is configured, the token pair is refreshed once and the
      request is retried a single time.
    - Refreshes are single-flight: concurrent callers that saw the same expired token wait
      on one lock and reuse whichever refresh completed first.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import requests

from api.attendance_api import ApiError, AttendanceApi
from core.config import Settings
from models.attendance_query import AttendanceQuery
from models.attendance_record import AttendanceRecord
from models.record_page import RecordPage
from models.session_roster import SessionRoster

logger = logging.getLogger(__name__)


class HttpAttendanceApi(AttendanceApi):

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self._base_url = settings.api_base_url
        self._timeout = settings.timeout
        self._access_token = settings.access_token
        self._refresh_token = settings.refresh_token
        self._session = session or requests.Session()
        self._refresh_lock = threading.Lock()

    # === properties ===

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    # === AttendanceApi ===

    async def list_attendance(self, query: AttendanceQuery) -> RecordPage:
        body = await asyncio.to_thread(
            self._request, "GET", "/attendance", params=query.to_params()
        )

        try:
            return RecordPage.from_dict(body or {})
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(f"Malformed attendance page: {e}") from e

    async def get_session_attendance(self, session_id: str) -> SessionRoster:
        body = await asyncio.to_thread(
            self._request, "GET", f"/attendance/sessions/{session_id}"
        )

        try:
            return SessionRoster.from_dict(body or {}, session_id)
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(f"Malformed session roster: {e}") from e

    async def bulk_upsert(self, session_id: str, payload: dict) -> None:
        await asyncio.to_thread(
            self._request, "PUT", f"/attendance/sessions/{session_id}", json=payload
        )

    async def toggle_attendance(self, record_id: str) -> AttendanceRecord:
        body = await asyncio.to_thread(
            self._request, "PATCH", f"/attendance/{record_id}", json={}
        )

        try:
            return AttendanceRecord.from_dict(body or {})
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(f"Malformed attendance record: {e}") from e

    def close(self) -> None:
        self._session.close()

    # === transport ===

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: Any = None,
    ) -> Any:
        token_used = self._access_token
        response = self._send(method, path, params, json)

        if response.status_code == 401 and self._refresh_token:
            if self._refresh_access_token(token_used):
                response = self._send(method, path, params, json)

        return self._decode(response, method, path)

    def _send(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: Any = None,
    ) -> requests.Response:
        url = self._url(path)
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        logger.debug("%s %s params=%s", method, url, params)

        try:
            return self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ApiError(f"Network error: {e}") from e

    def _decode(self, response: requests.Response, method: str, path: str) -> Any:
        if response.status_code == 204:
            return None

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = None

            if isinstance(body, dict):
                message = body.get("message") or body.get("error")

            message = message or "Request failed"
            logger.warning(
                "%s %s returned %s: %s", method, path, response.status_code, message
            )
            raise ApiError(message, response.status_code)

        return body

    def _refresh_access_token(self, stale_token: str | None) -> bool:
        """
        Exchanges the refresh token for a new token pair.

        Args:
            stale_token (str | None): The access token the failed request was sent with.

        Returns:
            bool: True if a usable access token is now available, False if the refresh failed.

        Notes:
            - If another thread already replaced `stale_token` while this one waited on the lock,
              no second refresh is issued.
        """
        with self._refresh_lock:
            if self._access_token != stale_token:
                return self._access_token is not None

            try:
                response = self._session.post(
                    self._url("/auth/refresh"),
                    json={"refreshToken": self._refresh_token},
                    headers={"Accept": "application/json"},
                    timeout=self._timeout,
                )
                body = self._decode(response, "POST", "/auth/refresh")
            except (ApiError, requests.RequestException) as e:
                logger.warning("Token refresh failed: %s", e)
                return False

            access_token = body.get("accessToken") if isinstance(body, dict) else None
            refresh_token = body.get("refreshToken") if isinstance(body, dict) else None

            if not access_token or not refresh_token:
                logger.warning("Token refresh returned an invalid response.")
                return False

            self._access_token = access_token
            self._refresh_token = refresh_token
            logger.info("Access token refreshed.")
            return True

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path

        return f"{self._base_url}/{path.lstrip('/')}"
