# cli/menus/attendance_menu.py

"""
Attendance menus for the portal CLI.

Summary:
- Session Attendance: a view scoped to one session. Saving replaces the whole session roster in
  one upsert, so people on other pages keep their current values.
- Attendance List: a filtered view across sessions. Saving toggles only the records on the loaded
  page whose presence actually changes.

Both views share one `AttendanceEditor` and the same view loop:
    render page → build options for the current mode → dispatch action → repeat until exit.

Viewing actions: next/previous page, edit filters, refresh, enter edit mode (permission-gated).
Editing actions: toggle a row, mark everyone on the page present/absent, save, cancel.

Guarantees and policies:
- Toggles only write to the pending buffer; nothing reaches the server until Save.
- Pending edits survive paging and filter changes, and rows with a pending edit are starred.
- A list save only applies edits to records on the loaded page. Edits made on other pages are
  discarded and the save message says how many.
- A failed save keeps every pending edit and stays in edit mode.
- Leaving the view with pending edits requires confirmation to discard them.
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar, cast

import cli.formatters as cli_formatters
import cli.menu_helpers as helpers
import core.formatters as formatters
from cli.menu_helpers import MenuSignal
from core.attendance_editor import AttendanceEditor
from models.attendance_query import AttendanceQuery
from models.attendance_record import PersonType

T = TypeVar("T")


def run_session_view(editor: AttendanceEditor, page_size: int) -> None:
    session_id = helpers.prompt_user_input_or_cancel(
        "Enter the session ID (leave blank to cancel):"
    )

    if session_id is MenuSignal.CANCEL:
        helpers.returning_without_changes()
        return
    session_id = cast(str, session_id)

    query = AttendanceQuery(session_id=session_id, page_size=page_size)
    run_view(editor, query, f"SESSION {session_id}")


def run_list_view(editor: AttendanceEditor, page_size: int) -> None:
    query = prompt_filters(AttendanceQuery(page_size=page_size))

    if query is None:
        helpers.returning_without_changes()
        return

    run_view(editor, query, "ATTENDANCE LIST")


def run_view(editor: AttendanceEditor, query: AttendanceQuery, title: str) -> None:
    """
    Top-level loop with dispatch for an attendance view.

    Args:
        editor (AttendanceEditor): The shared editor.
        query (AttendanceQuery): The initial query to load.
        title (str): The banner title.

    Raises:
        RuntimeError: If the menu response is unrecognized.
    """
    load_response = run_async(editor.apply_filters(query))

    if not load_response.success:
        helpers.display_response_failure(load_response)
        return

    while True:
        display_page(editor, title)

        options = build_options(editor)
        zero_option = "Return to Main Menu"
        menu_response = helpers.display_menu("Select an action:", options, zero_option)

        if menu_response is MenuSignal.EXIT:
            if confirm_leave(editor):
                break
            continue

        elif callable(menu_response):
            menu_response()

        else:
            raise RuntimeError(f"Unexpected MenuResponse received: {menu_response}")

    helpers.returning_to("Main Menu")


def build_options(editor: AttendanceEditor) -> list[tuple[str, Callable[..., Any]]]:
    options: list[tuple[str, Callable[..., Any]]] = []
    page = editor.store.snapshot

    if editor.is_editing:
        options.append(("Toggle attendance", lambda: toggle_record(editor)))
        options.append(("Mark everyone on this page present", lambda: mark_page(editor, True)))
        options.append(("Mark everyone on this page absent", lambda: mark_page(editor, False)))

        if editor.can_save:
            label = formatters.format_count(editor.change_count, "change")
            options.append((f"Save ({label})", lambda: save_changes(editor)))

        options.append(("Cancel edit", lambda: cancel_edit(editor)))

    if page.has_next:
        options.append(("Next page", lambda: change_page(editor, page.page + 1)))

    if page.has_previous:
        options.append(("Previous page", lambda: change_page(editor, page.page - 1)))

    options.append(("Edit filters", lambda: edit_filters(editor)))
    options.append(("Refresh", lambda: refresh(editor)))

    if not editor.is_editing and editor.can_edit:
        options.append(("Edit mode", lambda: enter_edit_mode(editor)))

    return options


# === display ===


def display_page(editor: AttendanceEditor, title: str) -> None:
    banner = formatters.format_banner_text(title, width=60)
    print(f"\n{banner}")
    print(f"Filters: {cli_formatters.format_query_summary(editor.store.query)}")

    if editor.is_editing:
        print(f"[EDIT MODE] {formatters.format_count(editor.change_count, 'pending change')}")

    if editor.snapshot_outdated:
        print("[OUTDATED] Some saved changes are not shown yet. Refresh to reload the page.")

    print()

    records = editor.records
    helpers.display_results(
        records,
        show_index=True,
        formatter=lambda record: cli_formatters.format_record_oneline(
            record,
            editor.effective_presence(record),
            editor.is_pending(record),
        ),
    )

    print(f"\n{cli_formatters.format_page_footer(editor.store.snapshot)}")
    print(cli_formatters.format_presence_summary(editor.presence_summary()))


# === viewing actions ===


def change_page(editor: AttendanceEditor, page: int) -> None:
    response = run_async(editor.go_to_page(page))
    helpers.display_response_failure(response)


def refresh(editor: AttendanceEditor) -> None:
    response = run_async(editor.refresh())
    helpers.display_response_failure(response)


def edit_filters(editor: AttendanceEditor) -> None:
    current = editor.store.query or AttendanceQuery()
    query = prompt_filters(current)

    if query is None:
        helpers.returning_without_changes()
        return

    response = run_async(editor.apply_filters(query))
    helpers.display_response_failure(response)


def enter_edit_mode(editor: AttendanceEditor) -> None:
    response = editor.enter_edit_mode()
    helpers.display_response_failure(response)


# === editing actions ===


def toggle_record(editor: AttendanceEditor) -> None:
    records = editor.records

    if not records:
        print("\nThere are no records on this page.")
        return

    index = helpers.prompt_index_or_cancel(
        f"Enter a row number to toggle (1-{len(records)}, blank to cancel):",
        len(records),
    )

    if index is MenuSignal.CANCEL:
        return
    record = records[cast(int, index)]

    response = editor.toggle(record)

    if not response.success:
        helpers.display_response_failure(response)
        return

    print(
        f"\n{record.display_name} will be marked {formatters.format_presence(response.data['present'])} when saved."
    )


def mark_page(editor: AttendanceEditor, desired: bool) -> None:
    response = editor.mark_all(desired)

    if not response.success:
        helpers.display_response_failure(response)
        return

    print(
        f"\n{formatters.format_count(response.data['count'], 'record')} staged as {formatters.format_presence(desired)}."
    )


def save_changes(editor: AttendanceEditor) -> None:
    print("\nSaving attendance ...")

    response = run_async(editor.save())

    if not response.success:
        helpers.display_response_failure(response)
        print("Your changes are still pending. You can retry or cancel.")
        return

    print(f"... {response.detail}")

    if response.data.get("stale") and response.data.get("strategy") == "toggle":
        print("Filter to a single session to save edits across pages in one go.")

    if not response.data.get("refreshed") and not response.data.get("no_changes"):
        print("The view could not be reloaded. Use Refresh to see the latest data.")


def cancel_edit(editor: AttendanceEditor) -> None:
    if editor.change_count and not helpers.confirm_action(
        f"Discard {formatters.format_count(editor.change_count, 'pending change')}?"
    ):
        helpers.returning_without_changes()
        return

    response = editor.cancel()
    helpers.display_response_failure(response)


def confirm_leave(editor: AttendanceEditor) -> bool:
    if not editor.change_count:
        editor.cancel()
        return True

    helpers.caution_banner()

    if not helpers.confirm_action(
        f"Leaving will discard {formatters.format_count(editor.change_count, 'pending change')}. Continue?"
    ):
        return False

    editor.cancel()
    return True


# === filter prompts ===


def prompt_filters(current: AttendanceQuery) -> AttendanceQuery | None:
    """
    Walks through each filter, keeping the current value on blank input.

    Args:
        current (AttendanceQuery): The query whose values are offered as defaults.

    Returns:
        AttendanceQuery: The edited query.
        None: If the user cancels.

    Notes:
        - Entering "-" clears a filter.
        - Dates must be YYYY-MM-DD; invalid dates are re-prompted.
    """
    print("\nEdit filters (blank keeps the current value, '-' clears it).")

    changes: dict[str, Any] = {}
    text_fields = [
        ("session_id", "Session ID"),
        ("division", "Division"),
        ("district", "District"),
        ("tehsil", "Tehsil"),
        ("school", "School"),
        ("search", "Search text"),
    ]

    for field, label in text_fields:
        changes[field] = prompt_filter_value(label, getattr(current, field))

    for field, label in (("start_date", "Start date"), ("end_date", "End date")):
        changes[field] = prompt_date_value(label, getattr(current, field))

    changes["person_type"] = prompt_person_type(current.person_type)

    if changes["start_date"] and changes["end_date"] and changes["start_date"] > changes["end_date"]:
        print("\nThe start date must not be after the end date.")
        return None

    if not helpers.confirm_action("Apply these filters?"):
        return None

    return current.with_filters(**changes)


def prompt_filter_value(label: str, current: str | None) -> str | None:
    response = helpers.prompt_user_input(f"{label} [{current or 'any'}]:")

    if response == "":
        return current

    if response == "-":
        return None

    return response


def prompt_date_value(label: str, current: str | None) -> str | None:
    while True:
        response = prompt_filter_value(f"{label} (YYYY-MM-DD)", current)

        if response is None or response == current:
            return response

        try:
            return datetime.date.fromisoformat(response).isoformat()
        except ValueError:
            print("\nInvalid date. Please use YYYY-MM-DD.")


def prompt_person_type(current: PersonType | None) -> PersonType | None:
    label = current.value if current else "any"

    while True:
        response = helpers.prompt_user_input(
            f"Person type: 1. Teacher, 2. Student, '-' for any [{label}]:"
        )

        if response == "":
            return current

        if response == "-":
            return None

        if response == "1":
            return PersonType.TEACHER

        if response == "2":
            return PersonType.STUDENT

        print("\nInvalid selection. Please try again.")


# === helper methods ===


def run_async(coroutine: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coroutine)
