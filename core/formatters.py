# core/formatters.py

# all pure utilities & date/datetime helpers
# must never import from models!

import datetime

# === generic text formatters ===


def format_banner_text(title: str, width: int = 40) -> str:
    line = "=" * width
    centered_title = f"{title:^{width}}"

    return f"{line}\n{centered_title}\n{line}"


def format_count(count: int, singular: str, plural: str | None = None) -> str:
    noun = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {noun}"


def format_presence(present: bool) -> str:
    return "PRESENT" if present else "ABSENT"


# === date formatters ===


def format_session_date_short(date_str: str | None) -> str:
    if not date_str:
        return "[NO DATE]"

    try:
        session_date = datetime.date.fromisoformat(date_str[:10])
    except ValueError:
        return date_str

    return session_date.strftime("%a, %b %d")


def format_timestamp(timestamp: datetime.datetime | None) -> str:
    return timestamp.strftime("%Y-%m-%d %H:%M") if timestamp else "[NEVER]"
