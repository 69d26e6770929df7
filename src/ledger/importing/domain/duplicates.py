"""Duplicate detection for one import batch.

A key is a duplicate when it matches a persisted record ("already
exists") or an earlier row of the same batch that was accepted
("duplicate within file"). Rows that failed are never registered, so a
bad first occurrence does not block a later good one.
"""

from typing import Callable, Iterable, Optional

from .entities import ViolationKind
from .normalizers import normalize_text

Identity = Callable[[str], str]


class DuplicateTracker:
    """Tracks persisted and accepted keys per unique field.

    Owned by a single import run and discarded afterwards.
    """

    def __init__(self, identities: dict[str, Identity]):
        self._identities = identities
        self._existing: dict[str, set[str]] = {name: set() for name in identities}
        self._processed: dict[str, set[str]] = {name: set() for name in identities}

    @property
    def fields(self) -> list[str]:
        return list(self._identities)

    def _key(self, field_name: str, value) -> str:
        identity = self._identities.get(field_name, normalize_text)
        return identity("" if value is None else str(value))

    def seed(self, field_name: str, values: Iterable) -> None:
        """Load keys that are already persisted."""
        for value in values:
            key = self._key(field_name, value)
            if key:
                self._existing[field_name].add(key)

    def check(self, field_name: str, value) -> Optional[ViolationKind]:
        key = self._key(field_name, value)
        if not key:
            return None
        if key in self._existing[field_name]:
            return ViolationKind.ALREADY_EXISTS
        if key in self._processed[field_name]:
            return ViolationKind.DUPLICATE_IN_FILE
        return None

    def register(self, field_name: str, value) -> None:
        key = self._key(field_name, value)
        if key:
            self._processed[field_name].add(key)

    def register_all(self, values: dict) -> None:
        for field_name in self._identities:
            self.register(field_name, values.get(field_name))
