"""Tests for DuplicateTracker."""

import pytest

from src.ledger.importing.domain.duplicates import DuplicateTracker
from src.ledger.importing.domain.entities import ViolationKind
from src.ledger.importing.domain.normalizers import normalize_phone, normalize_text


@pytest.fixture
def tracker():
    tracker = DuplicateTracker(
        {"management_number": normalize_text, "phone_number": normalize_phone}
    )
    tracker.seed("management_number", ["M-001", None, ""])
    tracker.seed("phone_number", ["090-1111-2222"])
    return tracker


class TestDuplicateTracker:
    def test_existing_key(self, tracker):
        assert tracker.check("management_number", "M-001") == ViolationKind.ALREADY_EXISTS

    def test_existing_key_compared_by_identity(self, tracker):
        assert tracker.check("phone_number", "09011112222") == ViolationKind.ALREADY_EXISTS
        assert tracker.check("management_number", "Ｍ-001") == ViolationKind.ALREADY_EXISTS

    def test_new_key(self, tracker):
        assert tracker.check("management_number", "M-002") is None

    def test_registered_key_is_duplicate_in_file(self, tracker):
        tracker.register("phone_number", "090-3333-4444")
        assert tracker.check("phone_number", "09033334444") == ViolationKind.DUPLICATE_IN_FILE

    def test_existing_wins_over_processed(self, tracker):
        tracker.register("management_number", "M-001")
        assert tracker.check("management_number", "M-001") == ViolationKind.ALREADY_EXISTS

    def test_empty_keys_are_ignored(self, tracker):
        tracker.register("management_number", "")
        assert tracker.check("management_number", "") is None
        assert tracker.check("management_number", None) is None

    def test_register_all_uses_tracked_fields_only(self, tracker):
        tracker.register_all({"management_number": "M-009", "notes": "x", "phone_number": ""})

        assert tracker.check("management_number", "M-009") == ViolationKind.DUPLICATE_IN_FILE
        assert tracker.fields == ["management_number", "phone_number"]

    def test_trackers_do_not_share_state(self):
        first = DuplicateTracker({"terminal_code": normalize_text})
        first.register("terminal_code", "T-1")

        second = DuplicateTracker({"terminal_code": normalize_text})
        assert second.check("terminal_code", "T-1") is None
