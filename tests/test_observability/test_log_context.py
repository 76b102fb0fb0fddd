"""
Tests for the structlog processors that stamp and mask log events.
"""

from buscai.config import settings
from buscai.observability.logging import MASK, add_service_context, mask_contact_fields


class TestServiceContext:
    def test_stamps_identity(self):
        event = add_service_context("worker")(None, "info", {"event": "job_started"})
        assert event["service"] == settings.APP_NAME
        assert event["component"] == "worker"
        assert event["environment"] == settings.ENVIRONMENT
        assert event["version"] == settings.APP_VERSION

    def test_keeps_explicit_fields(self):
        event = add_service_context("api")(None, "info", {"event": "x", "component": "search"})
        assert event["component"] == "search"


class TestMaskContactFields:
    def test_masks_contact_values(self):
        event = mask_contact_fields(None, "info", {
            "event": "company_created",
            "phone": "+5511999990000",
            "whatsapp": "5511988887777",
            "card_token": "tok_123",
            "company_id": "abc",
        })
        assert event["phone"] == MASK
        assert event["whatsapp"] == MASK
        assert event["card_token"] == MASK
        assert event["company_id"] == "abc"
        assert event["event"] == "company_created"

    def test_none_left_alone(self):
        assert mask_contact_fields(None, "info", {"event": "x", "phone": None})["phone"] is None
