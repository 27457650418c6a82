"""Tests for the email payload validator."""

import pytest

from mailstore.exceptions import ValidationError
from mailstore.ingestion.models import EmailPayload
from mailstore.ingestion.validation import validate_email_payload


class TestValidateEmailPayload:
    """Test the structural email contract."""

    def test_valid_payload_is_normalized(self, valid_payload):
        """A complete payload validates into an EmailPayload."""
        email = validate_email_payload(valid_payload)

        assert isinstance(email, EmailPayload)
        assert email.subject == "Quarterly report"
        assert email.recipient == ["bob@example.com"]
        assert email.cc == ["carol@example.com"]
        assert email.bcc == []

    def test_missing_cc_and_bcc_default_to_empty(self, valid_payload):
        """cc and bcc may be omitted."""
        del valid_payload["cc"]
        del valid_payload["bcc"]

        email = validate_email_payload(valid_payload)
        assert email.cc == []
        assert email.bcc == []

    def test_unknown_fields_are_dropped(self, valid_payload):
        """Extra keys do not fail validation and are not kept."""
        valid_payload["priority"] = "high"

        email = validate_email_payload(valid_payload)
        assert not hasattr(email, "priority")

    def test_empty_recipient_is_rejected(self, valid_payload):
        """An empty recipient list names the recipient field."""
        valid_payload["recipient"] = []

        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(valid_payload)

        assert list(exc_info.value.details) == ["recipient"]
        assert exc_info.value.details["recipient"]

    def test_missing_recipient_is_rejected(self, valid_payload):
        """recipient is required."""
        del valid_payload["recipient"]

        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(valid_payload)

        assert "recipient" in exc_info.value.details

    def test_all_missing_fields_are_reported(self):
        """Every missing required field gets its own entry."""
        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload({})

        assert set(exc_info.value.details) == {"subject", "sender", "recipient", "body"}

    @pytest.mark.parametrize("field,value", [
        ("subject", 42),
        ("sender", ["alice@example.com"]),
        ("body", None),
        ("recipient", "bob@example.com"),
        ("cc", "carol@example.com"),
    ])
    def test_wrong_types_are_rejected(self, valid_payload, field, value):
        """Values are not coerced into the expected type."""
        valid_payload[field] = value

        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(valid_payload)

        assert field in exc_info.value.details

    def test_nested_error_is_reported_under_field(self, valid_payload):
        """A bad list element is reported under its list's name."""
        valid_payload["bcc"] = ["dave@example.com", 7]

        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(valid_payload)

        assert list(exc_info.value.details) == ["bcc"]

    @pytest.mark.parametrize("payload", [None, "not an email", ["subject"], 3])
    def test_non_object_payload_is_rejected(self, payload):
        """Anything but a JSON object fails under the payload key."""
        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(payload)

        assert "payload" in exc_info.value.details

    def test_address_syntax_is_not_checked(self, valid_payload):
        """Only the shape is validated, not address syntax."""
        valid_payload["sender"] = "not-an-address"
        assert validate_email_payload(valid_payload).sender == "not-an-address"

    def test_error_serializes_for_response(self, valid_payload):
        """to_dict carries the message and per-field details."""
        valid_payload["recipient"] = []

        with pytest.raises(ValidationError) as exc_info:
            validate_email_payload(valid_payload)

        body = exc_info.value.to_dict()
        assert body["error"] == "Invalid email data"
        assert body["details"]["recipient"]
