"""
Tests for audit payload sanitization.
"""

import pytest

from buscai.observability.audit import (
    MAX_STRING_LENGTH,
    AuditRecorder,
    assert_no_sensitive_keys,
    find_sensitive_paths,
    sanitize_payload,
)


class TestSanitizePayload:
    def test_keeps_metadata_keys(self):
        payload = {"search_id": "abc", "results_count": 3, "source": "web", "duration_ms": 12}
        assert sanitize_payload(payload) == payload

    def test_drops_contact_and_raw_data(self):
        payload = {"phone": "+5511999990000", "text": "quero pizza", "raw": {"a": 1}, "status": "ok"}
        assert sanitize_payload(payload) == {"status": "ok"}

    def test_truncates_long_strings(self):
        result = sanitize_payload({"reason": "x" * 500})
        assert len(result["reason"]) == MAX_STRING_LENGTH + 3

    def test_error_is_stringified(self):
        assert sanitize_payload({"error": ValueError("boom")}) == {"error": "boom"}


class TestSensitiveKeys:
    def test_nested_paths_reported(self):
        paths = find_sensitive_paths({"company": {"whatsapp": "x"}, "items": [{"email": "y"}]})
        assert "company.whatsapp" in paths
        assert "items[0].email" in paths

    def test_masked_phone_is_allowed(self):
        assert_no_sensitive_keys({"phone_masked": "****1234"})

    def test_raises_on_sensitive(self):
        with pytest.raises(ValueError):
            assert_no_sensitive_keys({"query": "pizza"})


class TestAuditRecorder:
    async def test_unknown_event_type(self):
        with pytest.raises(ValueError):
            await AuditRecorder(None).record("made_up", {})

    async def test_without_session_is_noop(self):
        await AuditRecorder(None).record("search_performed", {"results_count": 0})
