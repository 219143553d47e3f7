# api/attendance_api.py

"""
Contracts for the remote collaborators the attendance engine depends on.

`AttendanceApi` lists the four logical operations the engine calls. Concrete
implementations own the wire details; the engine only relies on the shapes documented
on each method. `RolePermissions` answers whether a given role may mark attendance.

All API methods are coroutines. Implementations signal any failure, whether transport,
HTTP status, or malformed payload, by raising `ApiError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection

from models.attendance_query import AttendanceQuery
from models.attendance_record import AttendanceRecord
from models.record_page import RecordPage
from models.session_roster import SessionRoster

DEFAULT_MARKING_ROLES = frozenset({"admin", "trainer"})


class ApiError(Exception):
    """
    Raised when a remote call fails.

    Args:
        message (str): Human-readable explanation, usually taken from the server response.
        status_code (int | None): HTTP status, or None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message

        return f"{self.message} (HTTP {self.status_code})"


class AttendanceApi(ABC):

    @abstractmethod
    async def list_attendance(self, query: AttendanceQuery) -> RecordPage:
        """
        Fetches one page of attendance records matching the query filters.
        """

    @abstractmethod
    async def get_session_attendance(self, session_id: str) -> SessionRoster:
        """
        Fetches every teacher and student enrolled in a session, unpaginated.
        """

    @abstractmethod
    async def bulk_upsert(self, session_id: str, payload: dict) -> None:
        """
        Replaces presence for the people listed in `payload`.

        Payload shape: `{"teachers": [{"teacherId", "present"}], "students": [{"studentId", "present"}]}`,
        either key may be omitted.
        """

    @abstractmethod
    async def toggle_attendance(self, record_id: str) -> AttendanceRecord:
        """
        Flips `present` on one existing record and returns the updated record.
        """


class RolePermissions:

    def __init__(self, marking_roles: Collection[str] = DEFAULT_MARKING_ROLES):
        self._marking_roles = frozenset(role.lower() for role in marking_roles)

    @property
    def marking_roles(self) -> frozenset[str]:
        return self._marking_roles

    def may_mark_attendance(self, role: str | None) -> bool:
        return role is not None and role.lower() in self._marking_roles
