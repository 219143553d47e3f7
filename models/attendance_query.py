# models/attendance_query.py

"""
The AttendanceQuery model holds the filter and pagination state of an attendance view.

Queries are treated as immutable values: `with_page()` and `with_filters()` return new
instances rather than mutating the current one. This lets the snapshot store keep the
previously loaded query around and compare it field by field against the next one.

The page number is deliberately kept apart from the other filters. `filter_key()` covers
every field except `page`, which is how a "real" filter change is told apart from
simple paging.
"""

from __future__ import annotations

from typing import Any

from models.attendance_record import PersonType

DEFAULT_PAGE_SIZE = 100

FILTER_FIELDS = (
    "session_id",
    "division",
    "district",
    "tehsil",
    "school",
    "start_date",
    "end_date",
    "search",
    "person_type",
    "page_size",
)

# snake_case field -> query-string parameter
_PARAM_NAMES = {
    "session_id": "sessionId",
    "division": "division",
    "district": "district",
    "tehsil": "tehsil",
    "school": "school",
    "start_date": "startDate",
    "end_date": "endDate",
    "search": "search",
    "person_type": "personType",
    "page": "page",
    "page_size": "pageSize",
}


class AttendanceQuery:

    def __init__(
        self,
        session_id: str | None = None,
        division: str | None = None,
        district: str | None = None,
        tehsil: str | None = None,
        school: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        search: str | None = None,
        person_type: PersonType | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._session_id = session_id or None
        self._division = division or None
        self._district = district or None
        self._tehsil = tehsil or None
        self._school = school or None
        self._start_date = start_date or None
        self._end_date = end_date or None
        self._search = search.strip() if search and search.strip() else None
        self._person_type = PersonType(person_type) if person_type else None
        self._page = AttendanceQuery.validate_positive_int(page, "page")
        self._page_size = AttendanceQuery.validate_positive_int(page_size, "page_size")

    # === properties ===

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def division(self) -> str | None:
        return self._division

    @property
    def district(self) -> str | None:
        return self._district

    @property
    def tehsil(self) -> str | None:
        return self._tehsil

    @property
    def school(self) -> str | None:
        return self._school

    @property
    def start_date(self) -> str | None:
        return self._start_date

    @property
    def end_date(self) -> str | None:
        return self._end_date

    @property
    def search(self) -> str | None:
        return self._search

    @property
    def person_type(self) -> PersonType | None:
        return self._person_type

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def is_session_scoped(self) -> bool:
        return self._session_id is not None

    # === comparisons ===

    def filter_key(self) -> tuple:
        return tuple(getattr(self, field) for field in FILTER_FIELDS)

    def filters_differ(self, other: AttendanceQuery | None) -> bool:
        """
        Compares every filter field except `page` against another query.

        Args:
            other (AttendanceQuery | None): The previously loaded query, or None if nothing has been loaded yet.

        Returns:
            bool: True if any non-page field differs, or if `other` is None.
        """
        if other is None:
            return True

        for field in FILTER_FIELDS:
            if getattr(self, field) != getattr(other, field):
                return True

        return False

    # === derived queries ===

    def with_page(self, page: int) -> AttendanceQuery:
        return self._replace(page=page)

    def with_filters(self, **changes: Any) -> AttendanceQuery:
        if "page" in changes:
            raise ValueError("Use with_page() to change the page number.")

        unknown = set(changes) - set(FILTER_FIELDS)

        if unknown:
            raise ValueError(f"Unknown filter field(s): {', '.join(sorted(unknown))}")

        return self._replace(**changes)

    def _replace(self, **changes: Any) -> AttendanceQuery:
        values = {field: getattr(self, field) for field in FILTER_FIELDS}
        values["page"] = self._page
        values.update(changes)
        return AttendanceQuery(**values)

    # === persistence and import ===

    def to_params(self) -> dict[str, str | int]:
        params: dict[str, str | int] = {}

        for field, param in _PARAM_NAMES.items():
            value = getattr(self, field)

            if value is None:
                continue

            params[param] = value.value if isinstance(value, PersonType) else value

        return params

    # === data validators ===

    @staticmethod
    def validate_positive_int(value: int, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} must be an integer, got {value!r}.")

        if value < 1:
            raise ValueError(f"{name} must be 1 or greater, got {value}.")

        return value

    # === dunder methods ===

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttendanceQuery):
            return NotImplemented

        return self.filter_key() == other.filter_key() and self._page == other._page

    def __hash__(self) -> int:
        return hash((self.filter_key(), self._page))

    def __repr__(self) -> str:
        return f"AttendanceQuery({self.to_params()})"
