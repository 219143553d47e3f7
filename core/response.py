# core/response.py

from __future__ import annotations

import traceback
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from api.attendance_api import ApiError

# status reported when a transport failure carries no HTTP status
UNAVAILABLE_STATUS = 503


class ErrorCode(Enum):
    # === Validation Failures ===
    # page number or other argument is out of range
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"

    # === Authorization ===
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # === State Restrictions ===
    # operation is not allowed in the current view mode
    INVALID_STATE = "INVALID_STATE"

    # a save is still outstanding
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"

    # a newer load superseded this one before it resolved
    STALE_RESPONSE = "STALE_RESPONSE"

    # === Remote Failures ===
    API_ERROR = "API_ERROR"

    # some calls in a batch failed
    PARTIAL_FAILURE = "PARTIAL_FAILURE"

    # === Internal Faults ===
    INTERNAL_ERROR = "INTERNAL_ERROR"


class Response:
    """
    Outcome of a snapshot store, editor, or committer operation.

    Expected failures (remote errors, refused state transitions, stale loads) are reported
    through a failed `Response` instead of being raised, so a view can always show the message
    and stay usable.

    Attributes:
        success (bool): Whether the operation did what was asked.
        detail (str | None): Message suitable for showing to the user.
        error (ErrorCode | None): Machine-readable failure reason, None on success.
        status_code (int | None): HTTP-style status for the outcome.
        data (dict): Operation-specific payload, present on success and failure alike.
        trace (str | None): Formatted traceback, only for unexpected exceptions.
    """

    def __init__(
        self,
        success: bool,
        detail: str | None = None,
        error: ErrorCode | None = None,
        status_code: int | None = None,
        data: dict | None = None,
        trace: str | None = None,
    ):
        self._success = success
        self._detail = detail
        self._error = error
        self._status_code = status_code
        self._data = data or {}
        self._trace = trace

    # === properties ===

    @property
    def success(self) -> bool:
        return self._success

    @property
    def detail(self) -> str | None:
        return self._detail

    @property
    def error(self) -> ErrorCode | None:
        return self._error

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def data(self) -> dict:
        return self._data

    @property
    def trace(self) -> str | None:
        return self._trace

    # === constructors ===

    @classmethod
    def succeed(
        cls,
        detail: str | None = None,
        status_code: int | None = 200,
        data: dict | None = None,
    ) -> Response:
        return cls(True, detail, None, status_code, data)

    @classmethod
    def fail(
        cls,
        detail: str | None = None,
        error: ErrorCode | None = None,
        status_code: int | None = 400,
        data: dict | None = None,
        trace: str | None = None,
    ) -> Response:
        return cls(False, detail, error, status_code, data, trace)

    @classmethod
    def from_api_error(
        cls, e: ApiError, action: str, data: dict | None = None
    ) -> Response:
        """
        Reports a failed remote call as `ErrorCode.API_ERROR`.

        Args:
            e (ApiError): The error raised by the API layer.
            action (str): What was being attempted, e.g. "load attendance".
            data (dict | None): Payload to carry on the failed response.

        Returns:
            Response: A failure whose status is the HTTP status of `e`, or 503 when the request never got one.
        """
        return cls.fail(
            detail=f"Could not {action}: {e.message}",
            error=ErrorCode.API_ERROR,
            status_code=e.status_code or UNAVAILABLE_STATUS,
            data=data,
        )

    @classmethod
    def from_exception(cls, e: Exception, data: dict | None = None) -> Response:
        """
        Wraps an unexpected exception as an `INTERNAL_ERROR` failure, keeping the traceback in `trace`.
        """
        return cls.fail(
            detail=f"Unexpected error: {e}",
            error=ErrorCode.INTERNAL_ERROR,
            status_code=500,
            data=data,
            trace="".join(traceback.format_exception(type(e), e, e.__traceback__)),
        )

    def with_data(self, **extra) -> Response:
        """
        Returns a copy of this response with `extra` merged into its data.
        """
        return Response(
            self._success,
            self._detail,
            self._error,
            self._status_code,
            {**self._data, **extra},
            self._trace,
        )

    # === dunder methods ===

    def __str__(self) -> str:
        if self._success:
            return f"OK: {self._detail or ''}".rstrip()

        label = self._error.value if isinstance(self._error, Enum) else "FAILED"
        return f"{label}: {self._detail or ''}".rstrip()
