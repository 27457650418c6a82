"""Shared pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest
from fastapi.testclient import TestClient

from mailstore.config.settings import Settings
from mailstore.database.store import EmailStore
from mailstore.exceptions import EmbeddingError, StoreError
from mailstore.ingestion import IngestionPipeline
from mailstore.ingestion.models import EmailPayload, EmailSection, EmailStatus, StoredEmail
from mailstore.main import create_app
from mailstore.services.embeddings import EmbeddingProvider


class InMemoryEmailStore(EmailStore):
    """Dict-backed store recording every write."""

    def __init__(self, fail_insert_email: bool = False, fail_section_orders: Optional[Set[int]] = None):
        self.emails: Dict[int, StoredEmail] = {}
        self.sections: List[EmailSection] = []
        self.status_updates: List[tuple] = []
        self.fail_insert_email = fail_insert_email
        self.fail_section_orders = fail_section_orders or set()
        self._next_id = 1

    @property
    def writes(self) -> int:
        return len(self.emails) + len(self.sections) + len(self.status_updates)

    def sections_for(self, email_id: int) -> List[EmailSection]:
        return [s for s in self.sections if s.email_id == email_id]

    async def insert_email(self, email: EmailPayload) -> int:
        if self.fail_insert_email:
            raise StoreError("insert into emails rejected")
        email_id = self._next_id
        self._next_id += 1
        self.emails[email_id] = StoredEmail(
            id=email_id,
            subject=email.subject,
            sender=email.sender,
            recipient=list(email.recipient),
            cc=list(email.cc),
            bcc=list(email.bcc),
            body=email.body,
            status=EmailStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        return email_id

    async def insert_section(self, section: EmailSection) -> None:
        if section.section_order in self.fail_section_orders:
            raise StoreError("insert into email_sections rejected", email_id=section.email_id)
        assert section.email_id in self.emails
        self.sections.append(section)

    async def update_status(self, email_id: int, status: EmailStatus) -> None:
        self.status_updates.append((email_id, status))
        self.emails[email_id].status = status

    async def get_email(self, email_id: int) -> Optional[StoredEmail]:
        return self.emails.get(email_id)

    async def count_sections(self, email_id: int) -> int:
        return len(self.sections_for(email_id))

    async def last_section_order(self, email_id: int) -> int:
        return max((s.section_order for s in self.sections_for(email_id)), default=0)


class FakeEmbedder(EmbeddingProvider):
    """Deterministic embedder; fails on the listed 1-based call numbers."""

    model = "fake-embedding"
    dimensions = 4

    def __init__(self, fail_on_calls: Optional[Set[int]] = None):
        self.fail_on_calls = fail_on_calls or set()
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if len(self.calls) in self.fail_on_calls:
            raise EmbeddingError("embedding quota exceeded")
        return [float(len(text)), float(len(text.split())), 0.0, 1.0]


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryEmailStore()


@pytest.fixture
def embedder():
    """Embedder that always succeeds."""
    return FakeEmbedder()


@pytest.fixture
def pipeline(store, embedder):
    """Pipeline wired to the in-memory fakes."""
    return IngestionPipeline(store=store, embedder=embedder)


@pytest.fixture
def valid_payload():
    """A payload matching the email shape."""
    return {
        "subject": "Quarterly report",
        "sender": "alice@example.com",
        "recipient": ["bob@example.com"],
        "cc": ["carol@example.com"],
        "bcc": [],
        "body": "hello world",
    }


@pytest.fixture
def app(store, pipeline):
    """Application with the fakes injected in place of the database and OpenAI."""
    application = create_app(Settings())
    application.state.store = store
    application.state.pipeline = pipeline
    return application


@pytest.fixture
def client(app):
    """Test client; lifespan is not run so nothing external is created."""
    return TestClient(app)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")
