# models/record_page.py

"""
One page of attendance records as returned by the paginated list endpoint.
"""

from __future__ import annotations

import math

from models.attendance_record import AttendanceRecord


class RecordPage:

    def __init__(
        self,
        records: list[AttendanceRecord],
        page: int,
        page_size: int,
        total: int,
    ):
        self._records = list(records)
        self._page = page
        self._page_size = page_size
        self._total = total

    # === properties ===

    @property
    def records(self) -> list[AttendanceRecord]:
        return list(self._records)

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total(self) -> int:
        return self._total

    @property
    def total_pages(self) -> int:
        if self._page_size < 1:
            return 1

        return max(1, math.ceil(self._total / self._page_size))

    @property
    def has_next(self) -> bool:
        return self._page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self._page > 1

    @property
    def first_index(self) -> int:
        return 0 if self._total == 0 else (self._page - 1) * self._page_size + 1

    @property
    def last_index(self) -> int:
        return 0 if self._total == 0 else min(self._total, self._page * self._page_size)

    # === persistence and import ===

    @classmethod
    def from_dict(cls, data: dict) -> RecordPage:
        records = [AttendanceRecord.from_dict(item) for item in data.get("data", [])]

        return cls(
            records=records,
            page=int(data.get("page", 1)),
            page_size=int(data.get("pageSize", len(records) or 1)),
            total=int(data.get("total", len(records))),
        )

    @classmethod
    def empty(cls, page_size: int = 1) -> RecordPage:
        return cls([], 1, page_size, 0)

    # === dunder methods ===

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"RecordPage(page={self._page}, page_size={self._page_size}, total={self._total}, records={len(self._records)})"
