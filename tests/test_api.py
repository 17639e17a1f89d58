#!/usr/bin/env python3
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from pivot_bot.app.config import Config
from pivot_bot.app.controller import Controller
from pivot_bot.app.main import app, get_controller, incoming_text, render_text
from pivot_bot.app.session import ConversationStore
from pivot_bot.engine.errors import ConfigurationError
from pivot_bot.engine.table import load_default_table
from pivot_bot.engine.transition import TransitionEngine
from pivot_bot.schemas.state_models import Option, OutboundMessage
from pivot_bot.utils.security import compute_twilio_signature

PHONE = "whatsapp:+972501111111"
WEBHOOK_URL = "http://testserver/whatsapp/webhook"


class RecordingExecutor:
    def __init__(self):
        self.actions = []

    def execute(self, action):
        self.actions.append(action)
        return {}


class APITestCase(unittest.TestCase):
    def setUp(self):
        self.controller = Controller(
            engine=TransitionEngine(load_default_table()),
            store=ConversationStore(use_redis=False),
            executor=RecordingExecutor(),
        )
        app.dependency_overrides[get_controller] = lambda: self.controller
        self.client = TestClient(app)
        self.patches = [
            patch.object(Config, "SIMULATOR_API_KEY", "sim-key"),
            patch.object(Config, "TWILIO_AUTH_TOKEN", "twilio-token"),
            patch.object(Config, "SKIP_SIGNATURE_VALIDATION", False),
            patch.object(Config, "PUBLIC_BASE_URL", ""),
        ]
        for p in self.patches:
            p.start()

    def tearDown(self):
        for p in self.patches:
            p.stop()
        app.dependency_overrides.clear()


class TestWebhook(APITestCase):
    def post_webhook(self, params, signature=None):
        if signature is None:
            signature = compute_twilio_signature("twilio-token", WEBHOOK_URL, params)
        return self.client.post("/whatsapp/webhook", data=params, headers={"X-Twilio-Signature": signature})

    def test_signed_message_gets_twiml_reply(self):
        response = self.post_webhook({"From": PHONE, "Body": "שלום"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("application/xml"))
        self.assertIn("<Response><Message>", response.text)
        self.assertIn("רישום מסעדה חדשה", response.text)
        self.assertEqual(self.controller.current_state(PHONE), "INIT")

    def test_button_payload_wins_over_body(self):
        self.post_webhook({"From": PHONE, "Body": "שלום"})
        self.post_webhook({"From": PHONE, "Body": "📋 רישום מסעדה חדשה", "ButtonPayload": "new_restaurant"})
        self.assertEqual(self.controller.current_state(PHONE), "ONBOARDING_COMPANY_NAME")

    def test_invalid_signature_is_rejected(self):
        response = self.post_webhook({"From": PHONE, "Body": "שלום"}, signature="bogus")
        self.assertEqual(response.status_code, 403)
        self.assertIsNone(self.controller.current_state(PHONE))

    def test_signature_check_can_be_skipped(self):
        with patch.object(Config, "SKIP_SIGNATURE_VALIDATION", True):
            response = self.post_webhook({"From": PHONE, "Body": "שלום"}, signature="")
        self.assertEqual(response.status_code, 200)

    def test_public_base_url_is_signed(self):
        params = {"From": PHONE, "Body": "שלום"}
        signature = compute_twilio_signature("twilio-token", "https://bot.example.com/whatsapp/webhook", params)
        with patch.object(Config, "PUBLIC_BASE_URL", "https://bot.example.com"):
            response = self.post_webhook(params, signature=signature)
        self.assertEqual(response.status_code, 200)

    def test_missing_sender(self):
        response = self.post_webhook({"Body": "שלום"})
        self.assertEqual(response.status_code, 400)

    def test_reply_is_xml_escaped(self):
        self.controller.store.create(PHONE, "ONBOARDING_RESTAURANT_NAME", {})
        response = self.post_webhook({"From": PHONE, "Body": "Fish & <Chips>"})
        self.assertIn("Fish &amp; &lt;Chips&gt;", response.text)


class TestSimulator(APITestCase):
    def test_requires_api_key(self):
        response = self.client.post("/simulator/message", json={"phone": PHONE, "message": "שלום"})
        self.assertEqual(response.status_code, 403)

        response = self.client.post(
            "/simulator/message",
            json={"phone": PHONE, "message": "שלום"},
            headers={"x-simulator-api-key": "wrong"},
        )
        self.assertEqual(response.status_code, 403)

    def test_disabled_without_configured_key(self):
        with patch.object(Config, "SIMULATOR_API_KEY", None):
            response = self.client.post(
                "/simulator/message",
                json={"phone": PHONE, "message": "שלום"},
                headers={"x-simulator-api-key": "sim-key"},
            )
        self.assertEqual(response.status_code, 403)

    def test_conversation(self):
        headers = {"x-simulator-api-key": "sim-key"}
        response = self.client.post("/simulator/message", json={"phone": PHONE, "message": "שלום"}, headers=headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["state"], "INIT")
        self.assertEqual(data["messages"][0]["options"][0]["id"], "new_restaurant")

        response = self.client.post("/simulator/message", json={"phone": PHONE, "message": "new_restaurant"}, headers=headers)
        self.assertEqual(response.json()["state"], "ONBOARDING_COMPANY_NAME")

    def test_payment_confirmation(self):
        headers = {"x-simulator-api-key": "sim-key"}
        self.controller.store.create(PHONE, "WAITING_FOR_PAYMENT", {"paymentLink": "https://pay.example/x"})
        response = self.client.post("/payments/confirm", json={"phone": PHONE}, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"], "SETUP_SUPPLIERS_START")
        self.assertEqual(len(response.json()["messages"]), 1)

    def test_invalid_request(self):
        headers = {"x-simulator-api-key": "sim-key"}
        response = self.client.post("/simulator/message", json={"phone": "", "message": "שלום"}, headers=headers)
        self.assertEqual(response.status_code, 422)

    def test_configuration_error_is_a_500(self):
        broken = MagicMock()
        broken.handle_message.side_effect = ConfigurationError("unknown state: GONE")
        app.dependency_overrides[get_controller] = lambda: broken
        response = self.client.post(
            "/simulator/message",
            json={"phone": PHONE, "message": "שלום"},
            headers={"x-simulator-api-key": "sim-key"},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Conversation configuration error"})

    def test_stored_unknown_state_is_a_500(self):
        self.controller.store.create(PHONE, "NO_SUCH_STATE", {})
        response = self.client.post(
            "/simulator/message",
            json={"phone": PHONE, "message": "שלום"},
            headers={"x-simulator-api-key": "sim-key"},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Conversation configuration error"})


class TestHealth(APITestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["store"], "memory")


class TestRendering(unittest.TestCase):
    def test_render_text_lists_options(self):
        message = OutboundMessage(
            kind="button",
            body="בחר:",
            options=[Option(label="כן", id="yes"), Option(label="לא", id="no")],
            header="כותרת",
        )
        self.assertEqual(render_text(message), "כותרת\n\nבחר:\n\n• כן\n• לא")

    def test_incoming_text(self):
        self.assertEqual(incoming_text({"Body": "שלום"}), "שלום")
        self.assertEqual(incoming_text({"Body": "x", "ListId": "vegetables"}), "vegetables")
        self.assertEqual(incoming_text({"Body": "x", "ButtonPayload": "yes", "ListId": "no"}), "yes")
        self.assertEqual(incoming_text({}), "")


if __name__ == '__main__':
    unittest.main()
