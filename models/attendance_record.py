# models/attendance_record.py

"""
Represents one person's presence for one training session, as stored by the remote API.

Each `AttendanceRecord` links a person (teacher or student) to a session and carries the
presence value last written for them, along with who wrote it and when.

Presence on the wire is tri-state in practice: `present` may be true, false, or missing.
A missing value, or a record whose `markedBy` is the `SYSTEM_NOT_MARKED` placeholder, means
no human has marked the person yet. Internally this is represented by `AttendanceStatus`:
- PRESENT: explicitly marked present
- ABSENT: explicitly marked absent
- UNMARKED: placeholder row or missing value

Business rule: an UNMARKED person counts as present. Only an explicit ABSENT yields an
effective presence of False.

Records that have never been written have no `id`. Their `edit_key` falls back to a
person-scoped key so that pending edits can still refer to them.
"""

from __future__ import annotations

import datetime
from enum import Enum

SYSTEM_NOT_MARKED = "system:not-marked"


class PersonType(str, Enum):
    TEACHER = "Teacher"
    STUDENT = "Student"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    UNMARKED = "Unmarked"

    @property
    def effective_presence(self) -> bool:
        return self is not AttendanceStatus.ABSENT

    @classmethod
    def from_wire(cls, present: bool | None, marked_by: str | None) -> AttendanceStatus:
        if present is None or marked_by == SYSTEM_NOT_MARKED:
            return cls.UNMARKED

        return cls.PRESENT if present else cls.ABSENT


def person_key(person_type: PersonType, person_id: str) -> str:
    return f"{person_type.value}:{person_id}"


class AttendanceRecord:

    def __init__(
        self,
        id: str | None,
        person_id: str,
        person_type: PersonType,
        session_id: str,
        present: bool | None = None,
        marked_by: str | None = None,
        marked_at: datetime.datetime | None = None,
        person_name: str | None = None,
        roll_number: str | None = None,
        session_title: str | None = None,
        session_date: str | None = None,
    ):
        self._id = id
        self._person_id = person_id
        self._person_type = PersonType(person_type)
        self._session_id = session_id
        self._present = present
        self._marked_by = marked_by
        self._marked_at = marked_at
        self._person_name = person_name
        self._roll_number = roll_number
        self._session_title = session_title
        self._session_date = session_date

    # === properties ===

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def person_id(self) -> str:
        return self._person_id

    @property
    def person_type(self) -> PersonType:
        return self._person_type

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def present(self) -> bool | None:
        return self._present

    @property
    def marked_by(self) -> str | None:
        return self._marked_by

    @property
    def marked_at(self) -> datetime.datetime | None:
        return self._marked_at

    @property
    def person_name(self) -> str | None:
        return self._person_name

    @property
    def roll_number(self) -> str | None:
        return self._roll_number

    @property
    def session_title(self) -> str | None:
        return self._session_title

    @property
    def session_date(self) -> str | None:
        return self._session_date

    # --- derived ---

    @property
    def status(self) -> AttendanceStatus:
        return AttendanceStatus.from_wire(self._present, self._marked_by)

    @property
    def is_present(self) -> bool:
        return self.status.effective_presence

    @property
    def is_persisted(self) -> bool:
        return self._id is not None

    @property
    def edit_key(self) -> str:
        return self._id if self._id else person_key(self._person_type, self._person_id)

    @property
    def display_name(self) -> str:
        return self._person_name or self._person_id

    # === persistence and import ===

    def to_dict(self) -> dict:
        data = {
            "id": self._id,
            "personId": self._person_id,
            "personType": self._person_type.value,
            "sessionId": self._session_id,
            "markedBy": self._marked_by,
            "markedAt": self._marked_at.isoformat() if self._marked_at else None,
        }

        if self._present is not None:
            data["present"] = self._present

        return data

    @classmethod
    def from_dict(cls, data: dict) -> AttendanceRecord:
        session = data.get("session") or {}

        return cls(
            id=data.get("id"),
            person_id=data["personId"],
            person_type=PersonType(data["personType"]),
            session_id=data.get("sessionId") or session.get("id"),
            present=data.get("present"),
            marked_by=data.get("markedBy"),
            marked_at=parse_timestamp(data.get("markedAt") or data.get("timestamp")),
            person_name=data.get("personName"),
            roll_number=data.get("personRollNumber") or data.get("rollNumber"),
            session_title=session.get("title"),
            session_date=session.get("date"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"AttendanceRecord({self._id}, {self._person_type.value}, {self._person_id}, {self._session_id}, {self._present}, {self._marked_by})"

    def __str__(self) -> str:
        return f"ATTENDANCE: {self._person_type.value} {self.display_name} - {self.status.value} (session: {self._session_id})"


def parse_timestamp(value: str | None) -> datetime.datetime | None:
    if not value:
        return None

    # fromisoformat rejects a trailing "Z" before 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    return datetime.datetime.fromisoformat(value)
