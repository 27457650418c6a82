"""Structural validation of inbound email payloads."""

from typing import Any, Dict, List

import structlog
from pydantic import ValidationError as PydanticValidationError

from .models import EmailPayload
from ..exceptions import ValidationError

logger = structlog.get_logger(__name__)

PAYLOAD_FIELD = "payload"


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by top-level field name."""
    details: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else PAYLOAD_FIELD
        message = error.get("msg", "Invalid value")
        reasons = details.setdefault(field, [])
        if message not in reasons:
            reasons.append(message)
    return details


def validate_email_payload(payload: Any) -> EmailPayload:
    """Validate an untyped payload against the email shape.

    Returns the normalized ``EmailPayload``; raises ``ValidationError`` with a
    mapping of field name to reasons otherwise. Address syntax is not checked.
    """
    if isinstance(payload, EmailPayload):
        return payload

    if not isinstance(payload, dict):
        details = {PAYLOAD_FIELD: [f"Expected a JSON object, received {type(payload).__name__}"]}
        logger.info("Email payload rejected", fields=list(details))
        raise ValidationError(details)

    try:
        return EmailPayload.model_validate(payload)
    except PydanticValidationError as exc:
        details = _field_errors(exc)
        logger.info("Email payload rejected", fields=sorted(details))
        raise ValidationError(details) from exc
