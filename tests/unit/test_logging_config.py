"""
Unit Tests - Log Sanitization
=============================
"""

import pytest

from logging_config import mask_email, sanitize_event


class TestSanitizeEvent:

    @pytest.mark.unit
    def test_credentials_are_redacted(self):
        event = sanitize_event(None, "info", {
            "event": "sign_in",
            "password": "Sup3rSecret",
            "openai_api_key": "sk-live",
            "headers": {"Authorization": "Bearer abc", "xi-api-key": "el"},
            "access_token": "jwt",
        })

        assert event["password"] == "***REDACTED***"
        assert event["openai_api_key"] == "***REDACTED***"
        assert event["headers"] == {"Authorization": "***REDACTED***", "xi-api-key": "***REDACTED***"}
        assert event["access_token"] == "***REDACTED***"

    @pytest.mark.unit
    def test_token_counts_are_kept(self):
        event = sanitize_event(None, "info", {"event": "openai_usage", "completion_tokens": 42})

        assert event["completion_tokens"] == 42

    @pytest.mark.unit
    def test_emails_are_masked(self):
        event = sanitize_event(None, "warning", {"event": "sign_in_failed", "email": "ana.b@example.com"})

        assert event["email"] == "a***@example.com"

    @pytest.mark.unit
    def test_document_text_is_truncated(self):
        event = sanitize_event(None, "info", {"event": "ocr_complete", "text": "x" * 5000})

        assert event["text"] == "x" * 100 + "...[truncated]"


@pytest.mark.unit
@pytest.mark.parametrize("email,expected", [
    ("ana@example.com", "a***@example.com"),
    ("not-an-email", "***"),
    ("@example.com", "***@example.com"),
])
def test_mask_email(email, expected):
    assert mask_email(email) == expected
