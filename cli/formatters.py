# cli/formatters.py

from textwrap import dedent

import core.formatters as formatters
from models.attendance_query import AttendanceQuery
from models.attendance_record import AttendanceRecord, AttendanceStatus, PersonType
from models.record_page import RecordPage

# === AttendanceRecord formatters ===


def format_record_oneline(
    record: AttendanceRecord, present: bool, pending: bool = False
) -> str:
    marker = "*" if pending else " "
    unmarked = " [UNMARKED]" if record.status is AttendanceStatus.UNMARKED else ""
    session = formatters.format_session_date_short(record.session_date)

    return f"{marker} {record.display_name:<24} {record.person_type.value:<8} | {formatters.format_presence(present):<7}{unmarked} | {session}"


def format_record_multiline(record: AttendanceRecord) -> str:
    return dedent(
        f"""\
        Attendance record:
        ... Person: {record.display_name} ({record.person_type.value})
        ... Session: {record.session_title or record.session_id}
        ... Status: {record.status.value}
        ... Marked by: {record.marked_by or '[NOBODY]'}
        ... Marked at: {formatters.format_timestamp(record.marked_at)}
        """
    )


# === page and query formatters ===


def format_page_footer(page: RecordPage) -> str:
    if page.total == 0:
        return "No records match the current filters."

    return f"Showing {page.first_index}-{page.last_index} of {page.total} (page {page.page} of {page.total_pages})"


def format_query_summary(query: AttendanceQuery | None) -> str:
    if query is None:
        return "[NO FILTERS]"

    params = query.to_params()
    params.pop("page", None)
    params.pop("pageSize", None)

    if not params:
        return "[ALL SESSIONS]"

    return ", ".join(f"{key}={value}" for key, value in params.items())


def format_presence_summary(summary: dict[PersonType, tuple[int, int]]) -> str:
    parts = []

    for person_type, (present, total) in summary.items():
        percent = f"{present / total * 100:.0f}%" if total else "N/A"
        parts.append(f"{person_type.value}s: {present}/{total} ({percent})")

    return " | ".join(parts)
