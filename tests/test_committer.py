# tests/test_committer.py

import asyncio

from api.attendance_api import ApiError
from conftest import (
    FakeAttendanceApi,
    make_record,
    make_unmarked_record,
    roster_from_records,
)
from core.committer import (
    ReconciliationCommitter,
    build_upsert_payload,
    select_toggle_batch,
)
from core.pending_edit_buffer import PendingEditBuffer
from core.response import ErrorCode
from core.snapshot_store import AttendanceSnapshotStore
from models.attendance_query import AttendanceQuery
from models.attendance_record import PersonType


def load(api, query):
    store = AttendanceSnapshotStore(api.list_attendance)
    asyncio.run(store.load(query))
    return store


# === unscoped diff-toggle ===


def test_explicit_change_is_toggled(buffer):
    api = FakeAttendanceApi([make_record("a1", present=True)])
    store = load(api, AttendanceQuery())
    buffer.set("a1", False)

    batch = select_toggle_batch(buffer, store)

    assert [record.id for record, _ in batch.changes] == ["a1"]
    assert batch.no_ops == []


def test_defaulted_record_set_present_is_a_no_op(buffer):
    api = FakeAttendanceApi([make_unmarked_record("a1")])
    store = load(api, AttendanceQuery())
    buffer.set("a1", True)

    batch = select_toggle_batch(buffer, store)

    assert batch.changes == []
    assert batch.no_ops == ["a1"]


def test_no_op_edits_issue_no_calls(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery())
    buffer.bulk_set(["r1", "r2"], True)
    buffer.set("r3", False)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.success
    toggled = [call[1] for call in api.calls if call[0] == "toggle_attendance"]
    assert toggled == ["r3"]
    assert sorted(response.data["no_ops"]) == ["r1", "r2"]


def test_nothing_to_toggle_makes_no_network_call(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery())
    calls_before = list(api.calls)
    buffer.set("r1", True)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.success
    assert response.data["no_changes"]
    assert response.detail == "No actual changes to save."
    assert api.calls == calls_before
    assert buffer.edits() == {"r1": True}


def test_stale_edit_is_excluded(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery(page_size=2))
    buffer.set("r5", False)
    buffer.set("r1", False)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.success
    assert response.data["stale"] == ["r5"]
    assert response.data["succeeded"] == ["r1"]
    assert response.detail.endswith("1 edit not on the loaded page was discarded.")


def test_partial_failure_reports_counts(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery())
    buffer.bulk_set([f"r{i}" for i in range(1, 6)], False)
    api.fail_toggle_ids = {"r2", "r4"}

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert not response.success
    assert response.error is ErrorCode.PARTIAL_FAILURE
    assert "3 succeeded, 2 failed" in response.detail
    assert sorted(response.data["succeeded"]) == ["r1", "r3", "r5"]
    assert sorted(record_id for record_id, _ in response.data["failed"]) == ["r2", "r4"]
    assert len(buffer) == 5


def test_all_toggles_failing_is_an_api_error(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery())
    buffer.set("r1", False)
    api.failures["toggle_attendance"] = ApiError("Gateway timeout", 504)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.error is ErrorCode.API_ERROR
    assert response.data["failed"] == [("r1", "Gateway timeout (HTTP 504)")]


# === session-scoped full replace ===


def test_session_payload_omits_empty_student_list(buffer):
    teachers = [
        make_record(f"t{i}", person_id=f"teacher-{i}", person_type=PersonType.TEACHER)
        for i in range(1, 4)
    ]
    api = FakeAttendanceApi(teachers)
    store = load(api, AttendanceQuery(session_id="sess-1"))
    buffer.set("t2", False)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.success
    payload = response.data["payload"]
    assert set(payload) == {"teachers"}
    assert payload["teachers"] == [
        {"teacherId": "teacher-1", "present": True},
        {"teacherId": "teacher-2", "present": False},
        {"teacherId": "teacher-3", "present": True},
    ]
    assert api.calls[-1] == ("bulk_upsert", "sess-1", payload)


def test_session_save_never_reverts_unseen_people(buffer):
    # 40 students, only the first 10 are on screen
    students = [
        make_record(f"s{i}", person_id=f"student-{i}", present=(i % 3 != 0))
        for i in range(1, 41)
    ]
    api = FakeAttendanceApi(students)
    store = load(api, AttendanceQuery(session_id="sess-1", page_size=10))
    assert len(store.records) == 10

    buffer.set("s1", False)
    buffer.set("s3", True)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    sent = {row["studentId"]: row["present"] for row in response.data["payload"]["students"]}
    assert len(sent) == 40
    assert sent["student-1"] is False
    assert sent["student-3"] is True

    for record in students[10:]:
        assert sent[record.person_id] == record.is_present

    assert api.call_names().count("get_session_attendance") == 1


def test_session_payload_creates_first_time_marks(buffer):
    roster = roster_from_records(
        "sess-1",
        [make_record("a1", person_id="st-1")],
        unrecorded=[(PersonType.STUDENT, "st-2"), (PersonType.TEACHER, "t-1")],
    )
    buffer.set("Student:st-2", False)

    payload = build_upsert_payload(roster, buffer)

    assert payload == {
        "teachers": [{"teacherId": "t-1", "present": True}],
        "students": [
            {"studentId": "st-1", "present": True},
            {"studentId": "st-2", "present": False},
        ],
    }


def test_record_key_wins_over_person_key(buffer):
    roster = roster_from_records("sess-1", [make_record("a1", person_id="st-1")])
    buffer.set("a1", False)
    buffer.set("Student:st-1", True)

    payload = build_upsert_payload(roster, buffer)

    assert payload["students"] == [{"studentId": "st-1", "present": False}]


def test_session_roster_failure_sends_nothing(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery(session_id="sess-1"))
    buffer.set("r1", False)
    api.failures["get_session_attendance"] = ApiError("Not found", 404)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.error is ErrorCode.API_ERROR
    assert response.status_code == 404
    assert "bulk_upsert" not in api.call_names()


def test_session_upsert_failure(explicit_records, buffer):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery(session_id="sess-1"))
    buffer.set("r1", False)
    api.failures["bulk_upsert"] = ApiError("Network error: connection reset")

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert not response.success
    assert response.status_code == 503
    assert response.data["payload"]["students"][0] == {"studentId": "p-r1", "present": False}


def test_session_edit_without_roster_entry_is_stale(explicit_records):
    api = FakeAttendanceApi(explicit_records)
    store = load(api, AttendanceQuery(session_id="sess-1"))
    buffer = PendingEditBuffer()
    buffer.set("r1", False)
    buffer.set("gone", False)

    response = asyncio.run(ReconciliationCommitter(api).commit(buffer, store))

    assert response.success
    assert response.data["applied"] == 1
    assert response.data["stale"] == ["gone"]
    assert response.detail == (
        "Attendance saved (1 change). 1 edit not in this session was discarded."
    )
