# core/attendance_editor.py

"""
View-level controller for editing attendance, shared by the session screen and the list screen.

`AttendanceEditor` owns one `AttendanceSnapshotStore`, one `PendingEditBuffer`, and one
`ReconciliationCommitter`, all wired to the same `AttendanceApi`. Screens differ only in the
query they load: a query with a `session_id` gets the full-replace save, any other query gets
the diff-toggle save.

State machine:
    VIEWING --enter_edit_mode()--> EDITING        (requires permission to mark attendance)
    EDITING --toggle()/set_presence()/mark_all()--> EDITING
    EDITING --cancel()--> VIEWING                 (buffer cleared, no network call)
    EDITING --save()--> VIEWING                   (only on success or when nothing changed)
    EDITING --save() fails--> EDITING             (buffer kept exactly as it was)

Concurrency:
    - Only one save may be outstanding. `is_busy` is set before the first await, so a second
      `save()` issued while the first is pending is refused without touching the network.
    - Loads, paging, and cancel are refused while a save is in flight.
    - Pending edits survive filter and page changes until saved or cancelled.
"""

from __future__ import annotations

import logging
from enum import Enum

from api.attendance_api import AttendanceApi, RolePermissions
from core.committer import ReconciliationCommitter
from core.pending_edit_buffer import PendingEditBuffer
from core.response import ErrorCode, Response
from core.snapshot_store import AttendanceSnapshotStore
from models.attendance_query import AttendanceQuery
from models.attendance_record import AttendanceRecord, PersonType

logger = logging.getLogger(__name__)


class EditorMode(str, Enum):
    VIEWING = "VIEWING"
    EDITING = "EDITING"


class AttendanceEditor:

    def __init__(
        self,
        api: AttendanceApi,
        permissions: RolePermissions,
        role: str | None,
        store: AttendanceSnapshotStore | None = None,
        buffer: PendingEditBuffer | None = None,
        committer: ReconciliationCommitter | None = None,
    ):
        self._store = store or AttendanceSnapshotStore(api.list_attendance)
        self._buffer = buffer or PendingEditBuffer()
        self._committer = committer or ReconciliationCommitter(api)
        self._permissions = permissions
        self._role = role
        self._mode = EditorMode.VIEWING
        self._busy = False
        self._snapshot_outdated = False

    # === properties ===

    @property
    def store(self) -> AttendanceSnapshotStore:
        return self._store

    @property
    def buffer(self) -> PendingEditBuffer:
        return self._buffer

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def is_editing(self) -> bool:
        return self._mode is EditorMode.EDITING

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def snapshot_outdated(self) -> bool:
        return self._snapshot_outdated

    @property
    def can_edit(self) -> bool:
        return self._permissions.may_mark_attendance(self._role)

    @property
    def change_count(self) -> int:
        return self._buffer.size()

    @property
    def can_save(self) -> bool:
        return self.is_editing and not self._busy and not self._buffer.is_empty()

    @property
    def records(self) -> list[AttendanceRecord]:
        return self._store.records

    # === view queries ===

    def effective_presence(self, record: AttendanceRecord) -> bool:
        original = AttendanceSnapshotStore.effective_presence(record)
        return self._buffer.effective_for(record.edit_key, original)

    def is_pending(self, record: AttendanceRecord) -> bool:
        return record.edit_key in self._buffer

    def presence_summary(self) -> dict[PersonType, tuple[int, int]]:
        """
        Counts present people per person type on the loaded page, with pending edits overlaid.

        Returns:
            dict[PersonType, tuple[int, int]]: (present, total) for each person type.
        """
        summary = {person_type: [0, 0] for person_type in PersonType}

        for record in self._store.records:
            counts = summary[record.person_type]
            counts[1] += 1

            if self.effective_presence(record):
                counts[0] += 1

        return {person_type: (present, total) for person_type, (present, total) in summary.items()}

    # === loading ===

    async def apply_filters(self, query: AttendanceQuery) -> Response:
        """
        Loads `query` into the snapshot. Pending edits are kept.

        Returns:
            Response: The result of `AttendanceSnapshotStore.load()`, or `ErrorCode.OPERATION_IN_PROGRESS` while a save is outstanding.
        """
        if self._busy:
            return self._busy_response()

        return self._track_load(await self._store.load(query))

    async def go_to_page(self, page: int) -> Response:
        if self._busy:
            return self._busy_response()

        return self._track_load(await self._store.go_to_page(page))

    async def refresh(self) -> Response:
        if self._busy:
            return self._busy_response()

        return self._track_load(await self._store.refresh())

    # === mode transitions ===

    def enter_edit_mode(self) -> Response:
        if not self.can_edit:
            return Response.fail(
                detail=f"Role '{self._role}' may not mark attendance.",
                error=ErrorCode.PERMISSION_DENIED,
                status_code=403,
            )

        if self._busy:
            return self._busy_response()

        self._mode = EditorMode.EDITING
        return Response.succeed()

    def cancel(self) -> Response:
        """
        Discards all pending edits and returns to viewing.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): False only while a save is outstanding.
                - data (dict | None):
                    - "discarded" (int): The number of pending edits dropped.

        Notes:
            - Never calls the network and never touches the snapshot.
        """
        if self._busy:
            return self._busy_response()

        discarded = self._buffer.size()
        self._buffer.clear()
        self._mode = EditorMode.VIEWING

        if discarded:
            logger.info("Discarded %d pending attendance edits.", discarded)

        return Response.succeed(data={"discarded": discarded})

    # === edits ===

    def toggle(self, record: AttendanceRecord) -> Response:
        """
        Flips the effective presence of `record` in the buffer.

        Returns:
            Response: On success, data holds "key" (str) and "present" (bool), the new pending value.
        """
        if not self.is_editing:
            return self._not_editing_response()

        desired = not self.effective_presence(record)
        self._buffer.set(record.edit_key, desired)

        return Response.succeed(data={"key": record.edit_key, "present": desired})

    def set_presence(self, key: str, desired: bool) -> Response:
        if not self.is_editing:
            return self._not_editing_response()

        self._buffer.set(key, desired)
        return Response.succeed(data={"key": key, "present": desired})

    def mark_all(self, desired: bool, overwrite: bool = True) -> Response:
        """
        Sets the same pending value for every record on the loaded page.

        Args:
            desired (bool): True to mark everyone present, False for absent.
            overwrite (bool): If False, keeps pending values already set for some records.

        Returns:
            Response: On success, data holds "count" (int), the number of records on the page.
        """
        if not self.is_editing:
            return self._not_editing_response()

        keys = [record.edit_key for record in self._store.records]
        self._buffer.bulk_set(keys, desired, overwrite)

        return Response.succeed(data={"count": len(keys)})

    # === commit ===

    async def save(self) -> Response:
        """
        Commits pending edits and resolves the buffer.

        Returns:
            Response: The committer's response, with an added "refreshed" (bool) data key, or:
                - `ErrorCode.OPERATION_IN_PROGRESS` if another save is outstanding.
                - `ErrorCode.INVALID_STATE` if the editor is not in edit mode.
                - `ErrorCode.API_ERROR` if the snapshot is outdated and could not be reloaded.

        Notes:
            - On success the buffer is cleared, the editor returns to VIEWING, and the snapshot is
              reloaded if anything was written.
            - On failure the buffer is left exactly as it was and the editor stays in EDITING.
            - After a partially failed toggle batch the snapshot is reloaded so that retrying the
              same buffer only toggles the records that did not change.
            - If that reload fails, the snapshot is marked outdated. The next save reloads it
              before resolving any toggle, and sends nothing if the reload fails again.
        """
        if self._busy:
            return self._busy_response()

        if not self.is_editing:
            return self._not_editing_response()

        self._busy = True

        try:
            if self._snapshot_outdated and not await self._reload():
                return Response.fail(
                    detail="Could not reload attendance before saving. Nothing was sent; try again.",
                    error=ErrorCode.API_ERROR,
                    status_code=503,
                    data={"refreshed": False},
                )

            response = await self._committer.commit(self._buffer, self._store)
            wrote = bool(response.data.get("succeeded")) or (
                response.success and not response.data.get("no_changes")
            )
            refreshed = False

            if response.success:
                self._buffer.clear()
                self._mode = EditorMode.VIEWING

            if wrote:
                refreshed = await self._reload()

        finally:
            self._busy = False

        return response.with_data(refreshed=refreshed)

    async def _reload(self) -> bool:
        refresh_response = self._track_load(await self._store.refresh())

        if not refresh_response.success:
            self._snapshot_outdated = True
            logger.warning("Could not reload attendance: %s", refresh_response.detail)

        return refresh_response.success

    # === helper methods ===

    def _track_load(self, response: Response) -> Response:
        if response.success:
            self._snapshot_outdated = False

        return response

    def _busy_response(self) -> Response:
        return Response.fail(
            detail="A save is already in progress.",
            error=ErrorCode.OPERATION_IN_PROGRESS,
            status_code=409,
        )

    def _not_editing_response(self) -> Response:
        return Response.fail(
            detail="Enter edit mode before changing attendance.",
            error=ErrorCode.INVALID_STATE,
        )
