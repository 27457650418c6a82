"""Data models for the ingestion pipeline."""

from datetime import datetime
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import IngestionError


class EmailStatus(str, Enum):
    """Pipeline status persisted on each email row."""
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


class IngestionStatus(str, Enum):
    """Outcome tag of one ingestion run."""
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    STORE_ERROR = "store_error"
    EMBEDDING_ERROR = "embedding_error"


class EmailPayload(BaseModel):
    """Validated inbound email.

    Types are strict: numbers are not coerced to strings and scalars are not
    wrapped into lists. Unknown keys are dropped.
    """

    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    subject: str
    sender: str
    recipient: List[str] = Field(..., min_length=1)
    cc: List[str] = Field(default_factory=list)
    bcc: List[str] = Field(default_factory=list)
    body: str


@dataclass
class StoredEmail:
    """An email row as read back from the store."""

    id: int
    subject: str
    sender: str
    recipient: List[str]
    cc: List[str]
    bcc: List[str]
    body: str
    status: EmailStatus = EmailStatus.PENDING
    created_at: Optional[datetime] = None


@dataclass
class EmailSection:
    """One embedded, ordered slice of an email body."""

    email_id: int
    section_content: str
    embedding: List[float]
    section_order: int


@dataclass
class IngestionResult:
    """Tagged result of ``IngestionPipeline.ingest`` and ``resume``.

    ``error`` is set for every status other than ``SUCCESS``; ``email_id`` is
    set as soon as the email row exists, including on section failures.
    """

    status: IngestionStatus
    email_id: Optional[int] = None
    sections_written: int = 0
    total_sections: int = 0
    error: Optional[IngestionError] = None
    latency: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the email and all of its sections were stored."""
        return self.status == IngestionStatus.SUCCESS

    @classmethod
    def failure(cls, error: IngestionError, **kwargs: Any) -> "IngestionResult":
        """Build a failed result tagged by the error's type."""
        return cls(status=IngestionStatus(error.error_type), email_id=error.email_id, error=error, **kwargs)
