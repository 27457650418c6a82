"""
Email ingestion package.

Validates inbound emails, splits their bodies into word-bounded chunks,
embeds each chunk and stores the email with its ordered sections.
"""

from .chunking import DEFAULT_CHUNK_SIZE, split_into_chunks
from .models import EmailPayload, EmailSection, EmailStatus, IngestionResult, IngestionStatus, StoredEmail
from .pipeline import IngestionPipeline
from .validation import validate_email_payload

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "split_into_chunks",
    "EmailPayload",
    "EmailSection",
    "EmailStatus",
    "IngestionResult",
    "IngestionStatus",
    "StoredEmail",
    "IngestionPipeline",
    "validate_email_payload",
]
