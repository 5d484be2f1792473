"""Unit tests for the email (Resend) and WhatsApp (Twilio) dispatchers."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
import httpx
from urllib.parse import parse_qs
from app.services.email_dispatcher import EmailDispatcher
from app.services.outcome import OutcomeKind
from app.services.whatsapp_dispatcher import WhatsAppDispatcher, normalize_phone_number
from app.utils.errors import ConfigurationError


def make_email(handler, api_key="re_test", from_address="alerts@deadlinemind.app"):
    return EmailDispatcher(api_key, from_address, transport=httpx.MockTransport(handler))


def make_whatsapp(handler, **overrides):
    config = dict(account_sid="AC123", auth_token="token", from_number="+14155238886", content_sid="HX999")
    config.update(overrides)
    return WhatsAppDispatcher(**config, transport=httpx.MockTransport(handler))


class TestEmailDispatcher:
    @pytest.mark.asyncio
    async def test_success_returns_message_id(self):
        captured = {}

        def handler(request):
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-123"})

        outcome = await make_email(handler).send("jane@example.com", "<p>hi</p>", "Reminder", to_name="Jane")

        assert outcome.ok
        assert outcome.value == "email-123"
        assert captured["auth"] == "Bearer re_test"
        assert captured["body"]["from"] == "DeadlineMind <alerts@deadlinemind.app>"
        assert captured["body"]["to"] == ["Jane <jane@example.com>"]
        assert captured["body"]["subject"] == "Reminder"

    @pytest.mark.asyncio
    async def test_provider_rejection_is_transient_failure(self):
        handler = lambda request: httpx.Response(422, json={"message": "Invalid `to` field"})
        outcome = await make_email(handler).send("bad", "<p/>", "s")
        assert outcome.kind is OutcomeKind.TRANSIENT_FAILURE
        assert "Invalid `to` field" in outcome.error

    @pytest.mark.asyncio
    async def test_timeout_is_transient_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = await make_email(handler).send("jane@example.com", "<p/>", "s")
        assert outcome.kind is OutcomeKind.TRANSIENT_FAILURE
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_accepted_without_json_body_is_still_success(self):
        handler = lambda request: httpx.Response(200, text="OK")
        outcome = await make_email(handler).send("jane@example.com", "<p/>", "s")
        assert outcome.ok
        assert outcome.value is None

    @pytest.mark.asyncio
    async def test_missing_config_raises(self):
        dispatcher = make_email(lambda r: httpx.Response(200, json={}), api_key=None)
        assert dispatcher.missing_config() == ["RESEND_API_KEY"]
        assert not dispatcher.is_configured
        with pytest.raises(ConfigurationError) as exc:
            await dispatcher.send("jane@example.com", "<p/>", "s")
        assert exc.value.missing == ["RESEND_API_KEY"]


class TestPhoneNormalization:
    @pytest.mark.parametrize("raw, expected", [
        ("+91 98765 43210", "whatsapp:+919876543210"),
        ("919876543210", "whatsapp:+919876543210"),
        ("whatsapp:+14155550123", "whatsapp:+14155550123"),
        ("555-0123", None),
        ("+0123456789", None),
        ("", None),
        (None, None),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected


class TestWhatsAppDispatcher:
    @pytest.mark.asyncio
    async def test_sends_template_variables(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(201, json={"sid": "SM42"})

        outcome = await make_whatsapp(handler).send(
            phone_number="+44 7700 900123",
            recipient_label="Jane",
            vehicle_label="Corolla (KA01AB1234)",
            document_type="Tax",
            expiry_date_formatted="Oct 24, 2026",
        )

        assert outcome.ok and outcome.value == "SM42"
        assert captured["url"].endswith("/Accounts/AC123/Messages.json")
        assert captured["form"]["To"] == ["whatsapp:+447700900123"]
        assert captured["form"]["From"] == ["whatsapp:+14155238886"]
        assert captured["form"]["ContentSid"] == ["HX999"]
        variables = json.loads(captured["form"]["ContentVariables"][0])
        assert variables == {"1": "Jane", "2": "Corolla (KA01AB1234)", "3": "Tax", "4": "Oct 24, 2026"}

    @pytest.mark.asyncio
    async def test_accepted_without_json_body_is_still_success(self):
        handler = lambda request: httpx.Response(201, text="queued")
        outcome = await make_whatsapp(handler).send("+14155550123", "Jane", "Car (R)", "Tax", "Oct 24, 2026")
        assert outcome.ok
        assert outcome.value is None

    @pytest.mark.asyncio
    async def test_invalid_number_is_not_sent(self):
        calls = []
        dispatcher = make_whatsapp(lambda r: calls.append(r) or httpx.Response(201, json={"sid": "x"}))
        outcome = await dispatcher.send("12", "Jane", "Car (R)", "Tax", "Oct 24, 2026")
        assert outcome.kind is OutcomeKind.NOT_FOUND
        assert calls == []

    @pytest.mark.asyncio
    async def test_provider_error_does_not_raise(self):
        handler = lambda request: httpx.Response(400, json={"message": "Template not approved"})
        outcome = await make_whatsapp(handler).send("+14155550123", "Jane", "Car (R)", "Insurance", "Oct 24, 2026")
        assert outcome.kind is OutcomeKind.TRANSIENT_FAILURE
        assert "Template not approved" in outcome.error

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        outcome = await make_whatsapp(handler).send("+14155550123", "Jane", "Car (R)", "Tax", "Oct 24, 2026")
        assert outcome.kind is OutcomeKind.TRANSIENT_FAILURE

    def test_missing_config_lists_every_variable(self):
        dispatcher = make_whatsapp(lambda r: None, auth_token=None, content_sid="")
        assert dispatcher.missing_config() == ["TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_CONTENT_SID"]
