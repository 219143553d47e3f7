# core/config.py

"""
Runtime settings for the attendance portal, read from environment variables.

Variables:
    ATTENDANCE_API_BASE_URL: Base URL of the remote API (default http://localhost:3000/api/v1).
    ATTENDANCE_API_TOKEN: Bearer access token, if already signed in.
    ATTENDANCE_API_REFRESH_TOKEN: Refresh token used to renew an expired access token.
    ATTENDANCE_API_TIMEOUT: Per-request timeout in seconds (default 15).
    ATTENDANCE_PAGE_SIZE: Records per page in list views (default 100).
    ATTENDANCE_USER_ROLE: Role of the signed-in user (default trainer).
    ATTENDANCE_LOG_LEVEL: Logging level name (default WARNING).
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping

DEFAULT_API_BASE_URL = "http://localhost:3000/api/v1"
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_PAGE_SIZE = 100
DEFAULT_ROLE = "trainer"
DEFAULT_LOG_LEVEL = "WARNING"


class Settings:

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        access_token: str | None = None,
        refresh_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        page_size: int = DEFAULT_PAGE_SIZE,
        role: str = DEFAULT_ROLE,
        log_level: str = DEFAULT_LOG_LEVEL,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.access_token = access_token or None
        self.refresh_token = refresh_token or None
        self.timeout = timeout
        self.page_size = page_size
        self.role = role.strip().lower()
        self.log_level = log_level.strip().upper()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Builds `Settings` from environment variables, falling back to defaults for unset ones.

        Args:
            environ (Mapping[str, str] | None): Source mapping. Defaults to `os.environ`.

        Returns:
            Settings: The resolved settings.

        Raises:
            ValueError: If a numeric variable cannot be parsed or is not positive.
        """
        env = os.environ if environ is None else environ

        return cls(
            api_base_url=env.get("ATTENDANCE_API_BASE_URL", DEFAULT_API_BASE_URL),
            access_token=env.get("ATTENDANCE_API_TOKEN"),
            refresh_token=env.get("ATTENDANCE_API_REFRESH_TOKEN"),
            timeout=_positive(
                "ATTENDANCE_API_TIMEOUT",
                env.get("ATTENDANCE_API_TIMEOUT"),
                DEFAULT_TIMEOUT_SECONDS,
                float,
            ),
            page_size=_positive(
                "ATTENDANCE_PAGE_SIZE",
                env.get("ATTENDANCE_PAGE_SIZE"),
                DEFAULT_PAGE_SIZE,
                int,
            ),
            role=env.get("ATTENDANCE_USER_ROLE", DEFAULT_ROLE),
            log_level=env.get("ATTENDANCE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )

    def __repr__(self) -> str:
        # never print tokens
        return f"Settings({self.api_base_url}, timeout={self.timeout}, page_size={self.page_size}, role={self.role})"


def _positive(
    name: str,
    raw: str | None,
    default: int | float,
    cast: Callable[[str], int | float],
) -> int | float:
    if raw is None or raw.strip() == "":
        return default

    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from None

    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}.")

    return value
