"""Custom exceptions for the email ingestion service."""

from typing import Optional, Dict, Any, List


class IngestionError(Exception):
    """Base class for failures surfaced by the ingestion pipeline."""

    error_type = "ingestion_error"

    def __init__(
        self,
        message: str,
        email_id: Optional[int] = None,
        section_order: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.email_id = email_id
        self.section_order = section_order
        self.cause = cause
        super().__init__(self.message)

    def with_context(self, email_id: Optional[int] = None, section_order: Optional[int] = None) -> "IngestionError":
        """Attach the email id and section index once they are known."""
        if email_id is not None:
            self.email_id = email_id
        if section_order is not None:
            self.section_order = section_order
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "error": self.message,
            "error_type": self.error_type,
            "email_id": self.email_id,
            "section_order": self.section_order,
        }


class ValidationError(IngestionError):
    """Raised when a payload does not match the email shape."""

    error_type = "validation_error"

    def __init__(self, details: Dict[str, List[str]]):
        self.details = details
        super().__init__("Invalid email data")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "error": self.message,
            "details": self.details,
        }


class StoreError(IngestionError):
    """Raised when the store rejects a read or a write."""

    error_type = "store_error"


class EmbeddingError(IngestionError):
    """Raised when the embedding service fails for one chunk."""

    error_type = "embedding_error"


class EmailNotFoundError(Exception):
    """Raised when an email id does not exist in the store."""

    def __init__(self, email_id: int):
        self.email_id = email_id
        self.message = f"Email {email_id} not found"
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "error": self.message,
            "email_id": self.email_id,
        }


class EmailInProgressError(Exception):
    """Raised when resuming an email whose ingestion has not finished."""

    def __init__(self, email_id: int):
        self.email_id = email_id
        self.message = f"Email {email_id} is still being ingested"
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "error": self.message,
            "email_id": self.email_id,
        }
