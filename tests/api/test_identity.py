"""Bearer token -> identity."""
import unittest
from unittest.mock import patch

import jwt

from ppvgate.api.deps import decode_identity
from ppvgate.core.config import settings


def _token(claims, secret=None):
    return jwt.encode(claims, secret or settings.auth_jwt_secret, algorithm="HS256")


class TestDecodeIdentity(unittest.TestCase):
    def test_email_claim_lowercased(self):
        self.assertEqual(decode_identity(_token({"email": " Fan@Example.com "})), "fan@example.com")

    def test_wrong_secret(self):
        self.assertIsNone(decode_identity(_token({"email": "fan@example.com"}, secret="x" * 32)))

    def test_garbage_token(self):
        self.assertIsNone(decode_identity("not-a-jwt"))

    def test_missing_email(self):
        self.assertIsNone(decode_identity(_token({"sub": "user-1"})))

    def test_expired(self):
        self.assertIsNone(decode_identity(_token({"email": "fan@example.com", "exp": 1})))

    @patch.object(settings, "auth_jwt_audience", "ppv-portal")
    def test_audience_enforced_when_configured(self):
        self.assertIsNone(decode_identity(_token({"email": "fan@example.com", "aud": "other"})))
        self.assertEqual(
            decode_identity(_token({"email": "fan@example.com", "aud": "ppv-portal"})),
            "fan@example.com",
        )
