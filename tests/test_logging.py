from __future__ import annotations

from django.test import SimpleTestCase

from config.structlog_config import SERVICE_NAME, add_service, mask_sensitive


class LogProcessorTests(SimpleTestCase):
    def test_card_and_pix_data_are_masked(self):
        event = mask_sensitive(
            None,
            "info",
            {"event": "payment.created", "card_token": "tok_4242424242", "pix_key": "maria@example.com", "cvv": None},
        )
        self.assertEqual(event["card_token"], "**********4242")
        self.assertEqual(event["pix_key"], "*************.com")
        self.assertIsNone(event["cvv"])
        self.assertEqual(event["event"], "payment.created")

    def test_short_values_are_kept(self):
        self.assertEqual(mask_sensitive(None, "info", {"cvv": "123"})["cvv"], "123")

    def test_service_tag_does_not_override_bound_value(self):
        self.assertEqual(add_service(None, "info", {})["service"], SERVICE_NAME)
        self.assertEqual(add_service(None, "info", {"service": "worker"})["service"], "worker")
