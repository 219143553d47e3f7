# models/session_roster.py

"""
Represents the complete, unpaginated roster of one session as returned by the full-session endpoint.

The endpoint lists every enrolled teacher and student with a nested `attendance` object,
or `null` when no record has ever been written for that person. A `RosterEntry` wraps one
such person; `SessionRoster` groups the teacher and student sub-lists.

Notes:
- Entries without an attendance record are UNMARKED and therefore count as present.
- `edit_key` matches `AttendanceRecord.edit_key`, so pending edits made against a page
  of list records resolve against the roster without translation.
"""

from __future__ import annotations

from models.attendance_record import (
    AttendanceRecord,
    AttendanceStatus,
    PersonType,
    person_key,
)


class RosterEntry:

    def __init__(
        self,
        person_id: str,
        person_type: PersonType,
        name: str | None = None,
        roll_number: str | None = None,
        attendance: AttendanceRecord | None = None,
    ):
        self._person_id = person_id
        self._person_type = PersonType(person_type)
        self._name = name
        self._roll_number = roll_number
        self._attendance = attendance

    # === properties ===

    @property
    def person_id(self) -> str:
        return self._person_id

    @property
    def person_type(self) -> PersonType:
        return self._person_type

    @property
    def name(self) -> str:
        return self._name or self._person_id

    @property
    def roll_number(self) -> str | None:
        return self._roll_number

    @property
    def attendance(self) -> AttendanceRecord | None:
        return self._attendance

    @property
    def person_key(self) -> str:
        return person_key(self._person_type, self._person_id)

    @property
    def edit_key(self) -> str:
        if self._attendance is not None and self._attendance.id:
            return self._attendance.id

        return self.person_key

    @property
    def status(self) -> AttendanceStatus:
        if self._attendance is None:
            return AttendanceStatus.UNMARKED

        return self._attendance.status

    @property
    def is_present(self) -> bool:
        return self.status.effective_presence

    # === persistence and import ===

    @classmethod
    def from_dict(
        cls, data: dict, person_type: PersonType, session_id: str
    ) -> RosterEntry:
        attendance_data = data.get("attendance")
        attendance = None

        if attendance_data:
            attendance = AttendanceRecord.from_dict(
                {
                    "personId": data["id"],
                    "personType": person_type.value,
                    "sessionId": session_id,
                    **attendance_data,
                }
            )

        return cls(
            person_id=data["id"],
            person_type=person_type,
            name=data.get("name"),
            roll_number=data.get("rollNumber"),
            attendance=attendance,
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"RosterEntry({self._person_type.value}, {self._person_id}, {self.status.value})"


class SessionRoster:

    def __init__(
        self,
        session_id: str,
        teachers: list[RosterEntry] | None = None,
        students: list[RosterEntry] | None = None,
        title: str | None = None,
    ):
        self._session_id = session_id
        self._teachers = list(teachers or [])
        self._students = list(students or [])
        self._title = title

    # === properties ===

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def title(self) -> str | None:
        return self._title

    @property
    def teachers(self) -> list[RosterEntry]:
        return list(self._teachers)

    @property
    def students(self) -> list[RosterEntry]:
        return list(self._students)

    def entries(self) -> list[RosterEntry]:
        return self._teachers + self._students

    # === persistence and import ===

    @classmethod
    def from_dict(cls, data: dict, session_id: str | None = None) -> SessionRoster:
        session = data.get("session") or {}
        session_id = session_id or session.get("id")

        if not session_id:
            raise KeyError("session id is missing from the roster payload")

        teachers = [
            RosterEntry.from_dict(item, PersonType.TEACHER, session_id)
            for item in data.get("teachers") or []
        ]
        students = [
            RosterEntry.from_dict(item, PersonType.STUDENT, session_id)
            for item in data.get("students") or []
        ]

        return cls(session_id, teachers, students, session.get("title"))

    # === dunder methods ===

    def __len__(self) -> int:
        return len(self._teachers) + len(self._students)

    def __repr__(self) -> str:
        return f"SessionRoster({self._session_id}, teachers={len(self._teachers)}, students={len(self._students)})"
