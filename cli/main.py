# cli/main.py

"""
Start Menu for the attendance portal CLI.

Reads settings from the environment, connects to the remote API, and offers the
session-scoped and list attendance views.
"""

import logging

import cli.menu_helpers as helpers
import core.formatters as formatters
from api.attendance_api import RolePermissions
from api.http_client import HttpAttendanceApi
from cli.menu_helpers import MenuSignal
from cli.menus import attendance_menu
from core.attendance_editor import AttendanceEditor
from core.config import Settings
from core.log_config import configure_logging

logger = logging.getLogger(__name__)


def run_cli() -> None:
    """
    Top-level loop with dispatch for the Start menu.

    Raises:
        RuntimeError: If the menu response is unrecognized.
        SystemExit: If the settings are invalid, or when the user exits.
    """
    try:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
    except ValueError as e:
        print(f"\n[CONFIGURATION ERROR] {e}")
        raise SystemExit(2) from e

    logger.info("Using %r", settings)

    api = HttpAttendanceApi(settings)
    editor = AttendanceEditor(api, RolePermissions(), settings.role)

    title = formatters.format_banner_text("ATTENDANCE PORTAL")
    options = [
        (
            "Session attendance",
            lambda: attendance_menu.run_session_view(editor, settings.page_size),
        ),
        (
            "Attendance list",
            lambda: attendance_menu.run_list_view(editor, settings.page_size),
        ),
    ]
    zero_option = "Exit Program"

    try:
        while True:
            menu_response = helpers.display_menu(title, options, zero_option)

            if menu_response is MenuSignal.EXIT:
                exit_program()

            elif callable(menu_response):
                menu_response()

            else:
                raise RuntimeError(f"Unexpected MenuResponse received: {menu_response}")

    finally:
        api.close()


def exit_program():
    """
    Displays an exit banner and terminates the CLI program.

    Raises:
        SystemExit: Always raised to immediately terminate execution.
    """
    exit_banner = formatters.format_banner_text("Exiting Program")
    print(f"\n{exit_banner}\n")

    raise SystemExit


if __name__ == "__main__":
    run_cli()
