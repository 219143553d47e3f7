# tests/conftest.py

import asyncio

import pytest

from api.attendance_api import ApiError, AttendanceApi, RolePermissions
from core.attendance_editor import AttendanceEditor
from core.pending_edit_buffer import PendingEditBuffer
from core.snapshot_store import AttendanceSnapshotStore
from models.attendance_query import AttendanceQuery
from models.attendance_record import (
    SYSTEM_NOT_MARKED,
    AttendanceRecord,
    PersonType,
)
from models.record_page import RecordPage
from models.session_roster import RosterEntry, SessionRoster


def make_record(
    id,
    person_id=None,
    person_type=PersonType.STUDENT,
    session_id="sess-1",
    present=True,
    marked_by="trainer-1",
):
    return AttendanceRecord(
        id=id,
        person_id=person_id or f"p-{id}",
        person_type=person_type,
        session_id=session_id,
        present=present,
        marked_by=marked_by,
    )


def make_unmarked_record(id, **kwargs):
    return make_record(id, present=None, marked_by=SYSTEM_NOT_MARKED, **kwargs)


def roster_from_records(session_id, records, unrecorded=()):
    """
    Builds a `SessionRoster` from attendance records plus (person_type, person_id) pairs with no record.
    """
    teachers = []
    students = []

    for record in records:
        entry = RosterEntry(record.person_id, record.person_type, attendance=record)
        (teachers if record.person_type is PersonType.TEACHER else students).append(entry)

    for person_type, person_id in unrecorded:
        entry = RosterEntry(person_id, person_type)
        (teachers if person_type is PersonType.TEACHER else students).append(entry)

    return SessionRoster(session_id, teachers, students)


class FakeAttendanceApi(AttendanceApi):
    """
    In-memory API that records every call.

    - `records` backs the list endpoint and the toggle endpoint.
    - `rosters` backs the full-session endpoint; missing sessions are built from `records`.
    - `failures` maps a method name to an `ApiError` raised on every call to it.
    - `fail_toggle_ids` makes toggles fail for specific record IDs.
    - `gates` maps a method name to an `asyncio.Event` the call waits on before answering.
    """

    def __init__(self, records=(), rosters=None):
        self.records = {record.id: record for record in records}
        self.rosters = dict(rosters or {})
        self.calls = []
        self.failures = {}
        self.fail_toggle_ids = set()
        self.gates = {}

    async def _enter(self, name, *args):
        self.calls.append((name, *args))

        gate = self.gates.get(name)

        if gate is not None:
            await gate.wait()

        if name in self.failures:
            raise self.failures[name]

    def call_names(self):
        return [call[0] for call in self.calls]

    async def list_attendance(self, query):
        await self._enter("list_attendance", query)

        matching = [
            record
            for record in self.records.values()
            if (query.session_id is None or record.session_id == query.session_id)
            and (query.person_type is None or record.person_type is query.person_type)
        ]
        start = (query.page - 1) * query.page_size

        return RecordPage(
            matching[start : start + query.page_size],
            query.page,
            query.page_size,
            len(matching),
        )

    async def get_session_attendance(self, session_id):
        await self._enter("get_session_attendance", session_id)

        if session_id in self.rosters:
            return self.rosters[session_id]

        records = [r for r in self.records.values() if r.session_id == session_id]
        return roster_from_records(session_id, records)

    async def bulk_upsert(self, session_id, payload):
        await self._enter("bulk_upsert", session_id, payload)

    async def toggle_attendance(self, record_id):
        await self._enter("toggle_attendance", record_id)

        if record_id in self.fail_toggle_ids:
            raise ApiError("Toggle rejected", 500)

        record = self.records[record_id]
        updated = make_record(
            record.id,
            record.person_id,
            record.person_type,
            record.session_id,
            present=not record.is_present,
        )
        self.records[record_id] = updated
        return updated


@pytest.fixture
def explicit_records():
    return [make_record(f"r{i}") for i in range(1, 6)]


@pytest.fixture
def fake_api(explicit_records):
    return FakeAttendanceApi(explicit_records)


@pytest.fixture
def buffer():
    return PendingEditBuffer()


@pytest.fixture
def loaded_store(fake_api):
    store = AttendanceSnapshotStore(fake_api.list_attendance)
    asyncio.run(store.load(AttendanceQuery()))
    return store


@pytest.fixture
def trainer_editor(fake_api):
    return AttendanceEditor(fake_api, RolePermissions(), "trainer")


@pytest.fixture
def teacher_editor(fake_api):
    return AttendanceEditor(fake_api, RolePermissions(), "teacher")
