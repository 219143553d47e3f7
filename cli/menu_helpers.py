# cli/menu_helpers.py

"""
Prompt, menu, and message helpers shared by the attendance portal screens.

Input conventions:
- Every prompt goes through `prompt_user_input()`, which prints the prompt on its own line
  followed by a `>>` marker and returns the stripped reply.
- A blank reply is the universal "back out" gesture: `prompt_user_input_or_cancel()` and
  `prompt_index_or_cancel()` turn it into `MenuSignal.CANCEL`.
- Row numbers are typed 1-based and returned 0-based.
"""

import logging
from enum import Enum
from typing import Any, Callable, Iterable

import core.formatters as formatters
from core.response import ErrorCode, Response

INVALID_SELECTION = "Invalid selection. Please try again."

MenuAction = Callable[[], Any]


class MenuSignal(Enum):
    CANCEL = "CANCEL"
    EXIT = "EXIT"


# === menus and listings ===


def display_menu(
    title: str,
    options: list[tuple[str, MenuAction]],
    zero_option: str = "Return",
) -> MenuSignal | MenuAction:
    """
    Shows a numbered menu until the user picks a valid entry.

    Args:
        title (str): Heading printed above the entries.
        options (list[tuple[str, MenuAction]]): (label, action) pairs, numbered from 1.
        zero_option (str): Label for entry 0, which always leaves the menu.

    Returns:
        MenuSignal.EXIT: If the user picks 0.
        MenuAction: The action paired with the chosen label, not yet called.
    """
    while True:
        print(f"\n{title}")

        for number, (label, _) in enumerate(options, 1):
            print(f"{number}. {label}")

        print(f"0. {zero_option}")

        choice = prompt_user_input("Select an option:")

        if choice == "0":
            return MenuSignal.EXIT

        index = parse_row_number(choice, len(options))

        if index is None:
            print(INVALID_SELECTION)
            continue

        return options[index][1]


def display_results(
    results: Iterable[Any],
    show_index: bool = False,
    formatter: Callable[[Any], str] = str,
) -> None:
    for number, result in enumerate(results, 1):
        prefix = f"{number:>3}. " if show_index else ""
        print(f"{prefix}{formatter(result)}")


# === prompts ===


def prompt_user_input(prompt: str) -> str:
    return input(f"\n{prompt}\n  >> ").strip()


def prompt_user_input_or_cancel(prompt: str) -> str | MenuSignal:
    reply = prompt_user_input(prompt)
    return reply or MenuSignal.CANCEL


def prompt_index_or_cancel(prompt: str, upper_bound: int) -> int | MenuSignal:
    """
    Asks for a row number between 1 and `upper_bound`, re-prompting on bad input.

    Returns:
        int: The chosen row, 0-based.
        MenuSignal.CANCEL: If the reply is blank or "0".
    """
    while True:
        reply = prompt_user_input(prompt)

        if reply in ("", "0"):
            return MenuSignal.CANCEL

        index = parse_row_number(reply, upper_bound)

        if index is not None:
            return index

        print(f"\n{INVALID_SELECTION}")


def confirm_action(prompt: str) -> bool:
    while True:
        reply = prompt_user_input(f"{prompt} (y/n):").lower()

        if reply in ("y", "yes"):
            return True

        if reply in ("n", "no"):
            return False

        print(INVALID_SELECTION)


def parse_row_number(reply: str, upper_bound: int) -> int | None:
    try:
        number = int(reply)
    except ValueError:
        return None

    return number - 1 if 1 <= number <= upper_bound else None


# === messages ===


def returning_without_changes() -> None:
    print("\nReturning without changes.")


def returning_to(destination: str) -> None:
    print(f"\nReturning to {destination}.")


def caution_banner() -> None:
    print(f"\n{formatters.format_banner_text('CAUTION!')}")


def display_response_failure(response: Response) -> None:
    """
    Prints a failed `Response` as `[ERROR: CODE] detail`. Successful responses print nothing.

    The traceback of an `INTERNAL_ERROR` is printed as well when DEBUG logging is enabled.
    """
    if response.success:
        return

    label = response.error.name if response.error else "UNKNOWN"
    print(f"\n[ERROR: {label}] {response.detail}")

    if (
        response.error is ErrorCode.INTERNAL_ERROR
        and response.trace
        and logging.getLogger().isEnabledFor(logging.DEBUG)
    ):
        print(f"\n{response.trace}")
