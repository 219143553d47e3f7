# core/snapshot_store.py

"""
Holds the last-fetched server view of attendance records for the active query.

`AttendanceSnapshotStore` is the read side of the attendance engine. It loads one page of
records for a query and keeps it until the next successful load replaces it wholesale. It
never patches individual records and never sees pending edits.

Filter changes and paging:
    - Before each load the requested query is compared field by field against the previously
      requested one. If any filter other than `page` differs, the page is forced back to 1.
    - A page change alone keeps every other filter as is.

Out-of-order responses:
    - Every load is tagged with a generation number. If a newer load starts while an older one
      is still awaiting the network, the older response is discarded when it arrives, so the
      most recent request always determines what is shown.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from api.attendance_api import ApiError
from core.response import ErrorCode, Response
from models.attendance_query import AttendanceQuery
from models.attendance_record import AttendanceRecord
from models.record_page import RecordPage

logger = logging.getLogger(__name__)

FetchPage = Callable[[AttendanceQuery], Awaitable[RecordPage]]


class AttendanceSnapshotStore:

    def __init__(self, fetch_page: FetchPage):
        self._fetch_page = fetch_page
        self._snapshot: RecordPage = RecordPage.empty()
        self._query: AttendanceQuery | None = None
        self._last_requested: AttendanceQuery | None = None
        self._generation: int = 0

    # === properties ===

    @property
    def query(self) -> AttendanceQuery | None:
        """The query the current snapshot was loaded with."""
        return self._query

    @property
    def last_requested(self) -> AttendanceQuery | None:
        return self._last_requested

    @property
    def snapshot(self) -> RecordPage:
        return self._snapshot

    @property
    def records(self) -> list[AttendanceRecord]:
        return self._snapshot.records

    @property
    def is_loaded(self) -> bool:
        return self._query is not None

    # === loading ===

    def resolve_query(self, query: AttendanceQuery) -> AttendanceQuery:
        """
        Applies the filter-change rule to a requested query.

        Args:
            query (AttendanceQuery): The query as requested by the view.

        Returns:
            AttendanceQuery: `query` with its page reset to 1 if any non-page filter differs from the previously requested query, otherwise `query` unchanged.
        """
        previous = self._last_requested

        if previous is not None and query.filters_differ(previous) and query.page != 1:
            logger.debug("Filters changed; resetting page %s to 1.", query.page)
            return query.with_page(1)

        return query

    async def load(self, query: AttendanceQuery) -> Response:
        """
        Fetches the records for `query` and replaces the snapshot.

        Args:
            query (AttendanceQuery): The requested filters and page.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the page was fetched and the snapshot replaced.
                    - False if the fetch failed or a newer load superseded this one.
                - detail (str | None):
                    - On failure, a human-readable description of the error.
                    - On success, None.
                - error (ErrorCode | str | None):
                    - `ErrorCode.API_ERROR` if the remote call failed.
                    - `ErrorCode.STALE_RESPONSE` if a newer load was started before this one resolved.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success
                    - the HTTP status (or 503) for API failures
                    - 409 for stale responses
                - data (dict | None): Payload with the following keys:
                    - On success:
                        - "page" (RecordPage): The new snapshot.
                        - "query" (AttendanceQuery): The query actually loaded (page may have been reset).
                    - On failure:
                        - "query" (AttendanceQuery): The query that was attempted.

        Notes:
            - On any failure the previous snapshot is kept unchanged.
        """
        query = self.resolve_query(query)
        self._last_requested = query
        self._generation += 1
        generation = self._generation

        try:
            page = await self._fetch_page(query)

        except ApiError as e:
            logger.warning("Attendance load failed for %r: %s", query, e)
            return Response.from_api_error(e, "load attendance", data={"query": query})

        except Exception as e:
            logger.exception("Unexpected error while loading attendance")
            return Response.from_exception(e, data={"query": query})

        if generation != self._generation:
            logger.debug("Discarding stale attendance page for %r.", query)
            return Response.fail(
                detail="A newer request superseded this one.",
                error=ErrorCode.STALE_RESPONSE,
                status_code=409,
                data={"query": query},
            )

        self._snapshot = page
        self._query = query

        return Response.succeed(
            data={
                "page": page,
                "query": query,
            },
        )

    async def refresh(self) -> Response:
        """
        Reloads the most recently requested query.

        Returns:
            Response: The result of `load()`, or `ErrorCode.INVALID_STATE` if nothing has been requested yet.
        """
        query = self._last_requested or self._query

        if query is None:
            return Response.fail(
                detail="Nothing has been loaded yet.",
                error=ErrorCode.INVALID_STATE,
            )

        return await self.load(query)

    async def go_to_page(self, page: int) -> Response:
        query = self._last_requested or self._query

        if query is None:
            return Response.fail(
                detail="Nothing has been loaded yet.",
                error=ErrorCode.INVALID_STATE,
            )

        if page < 1 or (self._query is not None and page > self._snapshot.total_pages):
            return Response.fail(
                detail=f"Page {page} is out of range (1-{self._snapshot.total_pages}).",
                error=ErrorCode.INVALID_FIELD_VALUE,
            )

        return await self.load(query.with_page(page))

    # === data accessors ===

    def find_record(self, key: str) -> AttendanceRecord | None:
        for record in self._snapshot.records:
            if record.edit_key == key:
                return record

        return None

    def presence_map(self) -> dict[str, bool]:
        return {
            record.edit_key: AttendanceSnapshotStore.effective_presence(record)
            for record in self._snapshot.records
        }

    @staticmethod
    def effective_presence(record: AttendanceRecord | None) -> bool:
        """
        Derives the boolean presence shown for a record.

        Missing records and UNMARKED records count as present. Only an explicit absence is False.
        """
        if record is None:
            return True

        return record.is_present
