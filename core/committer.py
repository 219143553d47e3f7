# core/committer.py

"""
Turns pending attendance edits into network operations.

`ReconciliationCommitter` picks one of two strategies based on the scope of the loaded view:

Session-scoped full replace (the view is filtered to exactly one session):
    1. Fetch the complete roster of the session, both teachers and students, unpaginated.
    2. For every person, overlay the pending value on the roster's effective presence.
    3. Build one upsert list per person type, omitting a list that would be empty.
    4. Send everything in a single bulk upsert.
   Fetching the full roster first means people who were never on screen keep their current
   value instead of being reverted to whatever an older page showed.

Unscoped diff-toggle (no single session selected):
    1. Resolve each pending edit against the currently loaded page.
    2. Drop edits whose desired value already equals the effective original value.
    3. If nothing survives, report that there is nothing to save without any network call.
    4. Issue one toggle call per surviving edit, concurrently, and wait for all of them.
    5. Report successes and failures.
   This strategy only sees one page and is a weaker guarantee than the full replace.

Edits that no longer resolve to a loaded record are excluded and logged; they are not errors.

The committer never clears or modifies the buffer. It reports the outcome in a `Response`
and the caller decides what to do with the buffer.
"""

from __future__ import annotations

import asyncio
import logging

from api.attendance_api import ApiError, AttendanceApi
import core.formatters as formatters
from core.pending_edit_buffer import PendingEditBuffer
from core.response import ErrorCode, Response
from core.snapshot_store import AttendanceSnapshotStore
from models.attendance_record import AttendanceRecord
from models.session_roster import RosterEntry, SessionRoster

logger = logging.getLogger(__name__)

SESSION_STRATEGY = "session"
TOGGLE_STRATEGY = "toggle"


class ToggleBatch:
    """
    The outcome of resolving pending edits against a loaded page.

    Attributes:
        changes (list[tuple[AttendanceRecord, bool]]): Records to toggle with their desired value.
        no_ops (list[str]): Keys whose desired value equals the effective original.
        stale (list[str]): Keys that no longer resolve to a toggleable record.
    """

    def __init__(self):
        self.changes: list[tuple[AttendanceRecord, bool]] = []
        self.no_ops: list[str] = []
        self.stale: list[str] = []

    def __len__(self) -> int:
        return len(self.changes)


class ReconciliationCommitter:

    def __init__(self, api: AttendanceApi):
        self._api = api

    async def commit(
        self, buffer: PendingEditBuffer, store: AttendanceSnapshotStore
    ) -> Response:
        """
        Commits the pending edits with the strategy that matches the loaded view.

        Args:
            buffer (PendingEditBuffer): The pending edits. Read only.
            store (AttendanceSnapshotStore): The loaded snapshot. Read only.

        Returns:
            Response: The result of `commit_session()` if the loaded query is scoped to one session, otherwise the result of `commit_toggles()`.
        """
        query = store.query

        if query is not None and query.is_session_scoped:
            return await self.commit_session(query.session_id, buffer)

        return await self.commit_toggles(buffer, store)

    # === session-scoped full replace ===

    async def commit_session(
        self, session_id: str, buffer: PendingEditBuffer
    ) -> Response:
        """
        Replaces presence for the whole roster of one session in a single upsert.

        Args:
            session_id (str): The session the view is scoped to.
            buffer (PendingEditBuffer): The pending edits. Read only.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the upsert was accepted, or if there was nothing to send.
                    - False if fetching the roster or the upsert failed.
                - detail (str | None): Description of the result for display or logging.
                - error (ErrorCode | str | None):
                    - `ErrorCode.API_ERROR` if a remote call failed.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success
                    - the HTTP status (or 503) for API failures
                - data (dict | None): Payload with the following keys:
                    - "strategy" (str): Always "session".
                    - "payload" (dict | None): The upsert body, if one was built.
                    - "applied" (int): Number of pending edits that matched a roster entry.
                    - "stale" (list[str]): Pending keys with no matching roster entry.
                    - "no_changes" (bool): True if no network write was needed.

        Notes:
            - Every person on the roster is sent, not only those with pending edits.
        """
        data = {
            "strategy": SESSION_STRATEGY,
            "payload": None,
            "applied": 0,
            "stale": [],
            "no_changes": False,
        }

        if buffer.is_empty():
            data["no_changes"] = True
            return Response.succeed(detail="No changes to save.", data=data)

        try:
            roster = await self._api.get_session_attendance(session_id)
        except ApiError as e:
            logger.warning("Could not fetch roster for session %s: %s", session_id, e)
            return Response.from_api_error(e, "load the session roster", data=data)
        except Exception as e:
            logger.exception("Unexpected error while fetching session roster")
            return Response.from_exception(e, data=data)

        payload = build_upsert_payload(roster, buffer)
        matched = matched_keys(roster, buffer)
        data["payload"] = payload
        data["applied"] = len(matched)
        data["stale"] = [key for key in buffer.edits() if key not in matched]

        for key in data["stale"]:
            logger.debug("Pending edit %s has no roster entry in session %s.", key, session_id)

        if not payload:
            data["no_changes"] = True
            return Response.succeed(
                detail=with_discarded(
                    "The session roster is empty; nothing to save.",
                    data["stale"],
                    "in this session",
                ),
                data=data,
            )

        try:
            await self._api.bulk_upsert(session_id, payload)
        except ApiError as e:
            logger.warning("Bulk upsert failed for session %s: %s", session_id, e)
            return Response.from_api_error(e, "save attendance", data=data)
        except Exception as e:
            logger.exception("Unexpected error during bulk upsert")
            return Response.from_exception(e, data=data)

        logger.info(
            "Saved attendance for session %s: %d people, %d edited.",
            session_id,
            len(roster),
            data["applied"],
        )

        return Response.succeed(
            detail=with_discarded(
                f"Attendance saved ({formatters.format_count(data['applied'], 'change')}).",
                data["stale"],
                "in this session",
            ),
            data=data,
        )

    # === unscoped diff-toggle ===

    async def commit_toggles(
        self, buffer: PendingEditBuffer, store: AttendanceSnapshotStore
    ) -> Response:
        """
        Toggles each record whose pending value differs from its effective original.

        Args:
            buffer (PendingEditBuffer): The pending edits. Read only.
            store (AttendanceSnapshotStore): The loaded page used to resolve originals.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if every toggle succeeded, or if there were no actual changes.
                    - False if one or more toggles failed.
                - detail (str | None): Description of the result, e.g. "3 succeeded, 2 failed".
                - error (ErrorCode | str | None):
                    - `ErrorCode.PARTIAL_FAILURE` if some toggles failed and some succeeded.
                    - `ErrorCode.API_ERROR` if every toggle failed.
                - status_code (int | None):
                    - 200 on success
                    - 207 on partial failure
                    - 503 if every toggle failed
                - data (dict | None): Payload with the following keys:
                    - "strategy" (str): Always "toggle".
                    - "succeeded" (list[str]): Record IDs toggled successfully.
                    - "failed" (list[tuple[str, str]]): (record ID, error message) pairs.
                    - "no_ops" (list[str]): Keys dropped because nothing would change.
                    - "stale" (list[str]): Keys dropped because no loaded record matched.
                    - "no_changes" (bool): True if no toggle was needed at all.

        Notes:
            - All toggles are issued together and awaited as a group; completion order does not matter.
            - The toggle endpoint only flips, so a record is only sent when its value must change.
        """
        batch = select_toggle_batch(buffer, store)
        data = {
            "strategy": TOGGLE_STRATEGY,
            "succeeded": [],
            "failed": [],
            "no_ops": batch.no_ops,
            "stale": batch.stale,
            "no_changes": False,
        }

        if not batch.changes:
            data["no_changes"] = True
            return Response.succeed(
                detail=with_discarded(
                    "No actual changes to save.", batch.stale, "on the loaded page"
                ),
                data=data,
            )

        results = await asyncio.gather(
            *(self._api.toggle_attendance(record.id) for record, _ in batch.changes),
            return_exceptions=True,
        )

        for (record, _), result in zip(batch.changes, results):
            if isinstance(result, Exception):
                logger.warning("Toggle failed for record %s: %s", record.id, result)
                data["failed"].append((record.id, str(result)))
            elif isinstance(result, BaseException):
                raise result
            else:
                data["succeeded"].append(record.id)

        succeeded = len(data["succeeded"])
        failed = len(data["failed"])
        total = len(batch.changes)

        if failed:
            all_failed = succeeded == 0

            return Response.fail(
                detail=f"Failed to update {failed} of {total} records ({succeeded} succeeded, {failed} failed).",
                error=ErrorCode.API_ERROR if all_failed else ErrorCode.PARTIAL_FAILURE,
                status_code=503 if all_failed else 207,
                data=data,
            )

        logger.info("Toggled %d attendance records.", succeeded)

        return Response.succeed(
            detail=with_discarded(
                f"Attendance updated ({formatters.format_count(succeeded, 'change')} saved).",
                batch.stale,
                "on the loaded page",
            ),
            data=data,
        )


# === payload builders ===


def overlay_presence(entry: RosterEntry, buffer: PendingEditBuffer) -> bool:
    """
    Effective presence of one roster entry after overlaying pending edits.

    The record ID key takes precedence over the person-scoped key.
    """
    original = entry.is_present

    if entry.edit_key in buffer:
        return buffer.effective_for(entry.edit_key, original)

    return buffer.effective_for(entry.person_key, original)


def matched_keys(roster: SessionRoster, buffer: PendingEditBuffer) -> set[str]:
    matched = set()

    for entry in roster.entries():
        for key in (entry.edit_key, entry.person_key):
            if key in buffer:
                matched.add(key)

    return matched


def build_upsert_payload(roster: SessionRoster, buffer: PendingEditBuffer) -> dict:
    """
    Builds the bulk upsert body for a full session roster.

    Args:
        roster (SessionRoster): The complete roster of the session.
        buffer (PendingEditBuffer): The pending edits to overlay.

    Returns:
        dict: `{"teachers": [{"teacherId", "present"}], "students": [{"studentId", "present"}]}` with either key omitted when its list would be empty.
    """
    teachers = [
        {"teacherId": entry.person_id, "present": overlay_presence(entry, buffer)}
        for entry in roster.teachers
    ]
    students = [
        {"studentId": entry.person_id, "present": overlay_presence(entry, buffer)}
        for entry in roster.students
    ]

    payload = {}

    if teachers:
        payload["teachers"] = teachers

    if students:
        payload["students"] = students

    return payload


def select_toggle_batch(
    buffer: PendingEditBuffer, store: AttendanceSnapshotStore
) -> ToggleBatch:
    """
    Resolves pending edits against the loaded page and keeps only real changes.

    Args:
        buffer (PendingEditBuffer): The pending edits.
        store (AttendanceSnapshotStore): The loaded page.

    Returns:
        ToggleBatch: Records to toggle, plus the keys dropped as no-ops or stale.
    """
    batch = ToggleBatch()

    for key, desired in buffer.edits().items():
        record = store.find_record(key)

        if record is None or not record.is_persisted:
            logger.debug("Skipping pending edit %s: no loaded record to toggle.", key)
            batch.stale.append(key)
            continue

        if AttendanceSnapshotStore.effective_presence(record) == desired:
            logger.debug("Skipping pending edit %s: already %s.", key, desired)
            batch.no_ops.append(key)
            continue

        batch.changes.append((record, desired))

    return batch



def with_discarded(detail: str, stale: list[str], where: str) -> str:
    """
    Appends how many pending edits were dropped because they matched nothing `where`.
    """
    if not stale:
        return detail

    verb = "was" if len(stale) == 1 else "were"
    return f"{detail} {formatters.format_count(len(stale), 'edit')} not {where} {verb} discarded."
