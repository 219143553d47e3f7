# core/pending_edit_buffer.py

"""
In-memory buffer of attendance edits that have not been sent to the server.

`PendingEditBuffer` records user intent as a sparse map of edit key -> desired presence.
Keys are attendance record IDs, or person-scoped keys (`"Teacher:<id>"`, `"Student:<id>"`)
for people who have no record yet.

This enables workflows such as:
    - Toggling presence for many people across pages and filters before saving once
    - Showing an "N changes" count and gating the Save action on it
    - Rendering effective presence by overlaying pending values on server data

Guarantees:
    - The buffer never touches the snapshot or the network.
    - Setting the same key again overwrites the previous value.
    - The buffer is only ever cleared as a whole.
"""

from collections import Counter
from collections.abc import Collection, Mapping


class PendingEditBuffer:
    """
    A temporary store for proposed presence values, keyed by edit key.

    Notes:
        - Pending values are stored in a simple `dict[str, bool]`.
        - No validation is performed on keys; the caller is responsible for passing keys that match the current data.
    """

    def __init__(self):
        self._edits: dict[str, bool] = {}

    def set(self, key: str, desired: bool) -> None:
        """
        Record or replace the desired presence for one key.

        Args:
            key (str): The record ID or person-scoped key.
            desired (bool): True for present, False for absent.
        """
        self._edits[key] = bool(desired)

    def bulk_set(
        self,
        keys: Collection[str],
        desired: bool,
        overwrite: bool = True,
    ) -> None:
        """
        Record the same desired presence for multiple keys.

        Args:
            keys (Collection[str]): The keys to set.
            desired (bool): The value to apply to all given keys.
            overwrite (bool): If False, preserves pending values for keys already in the buffer.
        """
        for key in set(keys):
            if key in self._edits and not overwrite:
                continue

            self.set(key, desired)

    def clear(self) -> None:
        """Remove all pending edits."""
        self._edits.clear()

    def is_empty(self) -> bool:
        return not self._edits

    def size(self) -> int:
        return len(self._edits)

    def get(self, key: str) -> bool | None:
        return self._edits.get(key)

    def effective_for(self, key: str, original: bool) -> bool:
        """
        Overlay the pending value for `key` on an original value.

        Args:
            key (str): The record ID or person-scoped key.
            original (bool): The effective presence derived from server data.

        Returns:
            bool: The pending value if one exists, otherwise `original`.
        """
        return self._edits.get(key, original)

    def edits(self) -> dict[str, bool]:
        """
        Get a shallow copy of the pending edits.

        Returns:
            dict[str, bool]: A copy of the edit dictionary.
        """
        return self._edits.copy()

    def pending(
        self,
        original_map: Mapping[str, bool] | None = None,
    ) -> list[tuple[str, bool]]:
        """
        Get a list of pending edits, optionally restricted to real changes.

        Args:
            original_map (Mapping[str, bool] | None): If provided, exclude edits whose desired value equals the original effective presence.

        Returns:
            list[tuple[str, bool]]: A list of (key, desired) tuples in the order the keys were first set.

        Notes:
            - Keys missing from `original_map` compare against True, since unmarked people count as present.
        """
        pending = []

        for key, desired in self._edits.items():
            if original_map is not None and original_map.get(key, True) == desired:
                continue

            pending.append((key, desired))

        return pending

    def summary(self) -> dict[bool, int]:
        """
        Count pending edits by desired value.

        Returns:
            dict[bool, int]: `{True: <present count>, False: <absent count>}`.
        """
        counts = Counter(self._edits.values())
        return {True: counts[True], False: counts[False]}

    # === dunder methods ===

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, key: object) -> bool:
        return key in self._edits

    def __repr__(self) -> str:
        return f"PendingEditBuffer({self._edits!r})"
