"""Tests for the SQLAlchemy email store and its models."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from mailstore.config.settings import DatabaseSettings
from mailstore.database.engine import create_database_engine
from mailstore.database.models import Base, Email, EmailSection as EmailSectionRow
from mailstore.database.store import SqlEmailStore
from mailstore.exceptions import StoreError
from mailstore.ingestion.models import EmailPayload, EmailSection, EmailStatus


def make_session():
    """Mock AsyncSession usable as ``async with factory() as s, s.begin()``."""
    session = MagicMock()
    session.__aenter__.return_value = session
    session.__aexit__.return_value = False
    session.begin.return_value.__aenter__.return_value = None
    session.begin.return_value.__aexit__.return_value = False
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    return session


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def sql_store(session):
    return SqlEmailStore(MagicMock(return_value=session))


@pytest.fixture
def email_payload():
    return EmailPayload(
        subject="Shipment delayed",
        sender="ops@example.com",
        recipient=["customer@example.com"],
        body="The shipment is delayed by two days.",
    )


class TestDatabaseModels:
    """Test database model definitions."""

    def test_tables_registered(self):
        """Both tables are part of the metadata."""
        assert set(Base.metadata.tables) == {"emails", "email_sections"}

    def test_section_order_is_unique_per_email(self):
        """(email_id, section_order) is a unique constraint."""
        table = Base.metadata.tables["email_sections"]
        unique_columns = [
            tuple(c.name for c in constraint.columns)
            for constraint in table.constraints
            if constraint.__class__.__name__ == "UniqueConstraint"
        ]
        assert ("email_id", "section_order") in unique_columns

    def test_sections_reference_emails(self):
        """email_sections.email_id is a foreign key to emails.id."""
        column = Base.metadata.tables["email_sections"].c.email_id
        assert [fk.target_fullname for fk in column.foreign_keys] == ["emails.id"]

    def test_embedding_dimensions(self):
        """The embedding column is a 1536-dimension vector."""
        column = Base.metadata.tables["email_sections"].c.embedding
        assert column.type.dim == 1536


class TestSqlEmailStore:
    """Test SqlEmailStore against a mocked session."""

    @pytest.mark.asyncio
    async def test_insert_email_returns_generated_id(self, sql_store, session, email_payload):
        """The id assigned on flush is returned."""
        def assign_id():
            session.add.call_args[0][0].id = 42

        session.flush.side_effect = assign_id

        email_id = await sql_store.insert_email(email_payload)

        assert email_id == 42
        row = session.add.call_args[0][0]
        assert isinstance(row, Email)
        assert row.recipient == ["customer@example.com"]
        assert row.cc == []
        assert row.status == "pending"

    @pytest.mark.asyncio
    async def test_insert_email_failure_raises_store_error(self, sql_store, session, email_payload):
        """Database errors surface as StoreError."""
        session.flush.side_effect = OperationalError("INSERT INTO emails", {}, Exception("connection lost"))

        with pytest.raises(StoreError) as exc_info:
            await sql_store.insert_email(email_payload)

        assert exc_info.value.email_id is None
        assert isinstance(exc_info.value.cause, OperationalError)

    @pytest.mark.asyncio
    async def test_insert_section(self, sql_store, session):
        """A section becomes one email_sections row."""
        section = EmailSection(email_id=7, section_content="hello", embedding=[0.1] * 1536, section_order=1)

        await sql_store.insert_section(section)

        row = session.add.call_args[0][0]
        assert isinstance(row, EmailSectionRow)
        assert row.email_id == 7
        assert row.section_order == 1
        assert row.section_content == "hello"

    @pytest.mark.asyncio
    async def test_insert_section_failure_carries_context(self, sql_store, session):
        """A rejected section insert names the email and section."""
        session.begin.return_value.__aexit__.side_effect = OperationalError("INSERT", {}, Exception("boom"))
        section = EmailSection(email_id=7, section_content="hello", embedding=[0.1] * 1536, section_order=3)

        with pytest.raises(StoreError) as exc_info:
            await sql_store.insert_section(section)

        assert exc_info.value.email_id == 7
        assert exc_info.value.section_order == 3

    @pytest.mark.asyncio
    async def test_get_email(self, sql_store, session):
        """A row is converted to a StoredEmail."""
        session.get.return_value = Email(
            id=7,
            subject="s",
            sender="a@example.com",
            recipient=["b@example.com"],
            cc=[],
            bcc=["c@example.com"],
            body="body",
            status="failed",
        )

        email = await sql_store.get_email(7)

        assert email.id == 7
        assert email.status == EmailStatus.FAILED
        assert email.bcc == ["c@example.com"]

    @pytest.mark.asyncio
    async def test_get_missing_email(self, sql_store, session):
        """A missing row is None."""
        session.get.return_value = None
        assert await sql_store.get_email(1) is None

    @pytest.mark.asyncio
    async def test_count_and_last_order(self, sql_store, session):
        """Aggregates return integers, NULL counting as zero."""
        result = MagicMock()
        result.scalar.side_effect = [3, None]
        session.execute.return_value = result

        assert await sql_store.count_sections(7) == 3
        assert await sql_store.last_section_order(7) == 0

    @pytest.mark.asyncio
    async def test_update_status(self, sql_store, session):
        """Status updates execute one UPDATE statement."""
        await sql_store.update_status(7, EmailStatus.COMPLETE)
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_email_error_omits_bound_values(self, sql_store, session):
        """Errors report the driver message, not the email body."""
        payload = EmailPayload(subject="s", sender="a", recipient=["b"], body="TOP SECRET BODY TEXT")
        session.flush.side_effect = OperationalError(
            "INSERT INTO emails (subject, sender, recipient, cc, bcc, body, status) VALUES (?, ?, ?, ?, ?, ?, ?)",
            ("s", "a", '["b"]', "[]", "[]", "TOP SECRET BODY TEXT", "pending"),
            Exception("no such table: emails"),
        )

        with patch("mailstore.database.store.logger") as log:
            with pytest.raises(StoreError) as exc_info:
                await sql_store.insert_email(payload)

        assert "TOP SECRET BODY TEXT" in str(exc_info.value.cause)
        assert "TOP SECRET BODY TEXT" not in exc_info.value.message
        assert "TOP SECRET BODY TEXT" not in str(exc_info.value.to_dict())
        assert "no such table: emails" in exc_info.value.message
        assert "TOP SECRET BODY TEXT" not in log.error.call_args.kwargs["error"]

    @pytest.mark.asyncio
    async def test_insert_section_error_omits_chunk_and_vector(self, sql_store, session):
        """Section insert errors carry neither the chunk text nor the vector."""
        session.begin.return_value.__aexit__.side_effect = OperationalError(
            "INSERT INTO email_sections (email_id, section_content, embedding, section_order) VALUES (?, ?, ?, ?)",
            (7, "confidential chunk", "[0.123456,0.123456]", 2),
            Exception("duplicate key value violates unique constraint"),
        )
        section = EmailSection(email_id=7, section_content="confidential chunk", embedding=[0.123456] * 2, section_order=2)

        with pytest.raises(StoreError) as exc_info:
            await sql_store.insert_section(section)

        assert "confidential chunk" not in exc_info.value.message
        assert "0.123456" not in exc_info.value.message
        assert "duplicate key" in exc_info.value.message


class TestDatabaseEngine:
    """Test engine construction."""

    def test_engine_hides_statement_parameters(self):
        """Bound values are left out of SQLAlchemy error messages."""
        engine = create_database_engine(DatabaseSettings(host="db", password="pw"))

        assert engine.sync_engine.hide_parameters is True
