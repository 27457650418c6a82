"""Persistence of emails and their embedded sections."""

from abc import ABC, abstractmethod
from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Email, EmailSection as EmailSectionRow
from ..exceptions import StoreError
from ..ingestion.models import EmailPayload, EmailSection, EmailStatus, StoredEmail

logger = structlog.get_logger(__name__)


def describe_error(exc: BaseException) -> str:
    """Summarize a database error without the statement or its parameters.

    SQLAlchemy renders the bound values into ``str(exc)``; those carry the
    email body and section vectors.
    """
    orig = getattr(exc, "orig", None)
    if orig is not None:
        detail = str(orig).strip().splitlines()
        return f"{type(orig).__name__}: {detail[0]}" if detail else type(orig).__name__
    if isinstance(exc, SQLAlchemyError):
        return type(exc).__name__
    return f"{type(exc).__name__}: {exc}"


class EmailStore(ABC):
    """Store operations the ingestion pipeline depends on.

    Each write is its own unit of work: an email insert is visible before any
    of its sections are written, and a failed section insert leaves earlier
    rows in place. Implementations raise ``StoreError`` on failure.
    """

    @abstractmethod
    async def insert_email(self, email: EmailPayload) -> int:
        """Insert an email with status ``pending`` and return its new id."""
        pass

    @abstractmethod
    async def insert_section(self, section: EmailSection) -> None:
        """Insert one section row."""
        pass

    @abstractmethod
    async def update_status(self, email_id: int, status: EmailStatus) -> None:
        """Set the pipeline status of an email."""
        pass

    @abstractmethod
    async def get_email(self, email_id: int) -> Optional[StoredEmail]:
        """Return the email with *email_id*, or ``None``."""
        pass

    @abstractmethod
    async def count_sections(self, email_id: int) -> int:
        """Return how many sections are stored for an email."""
        pass

    @abstractmethod
    async def last_section_order(self, email_id: int) -> int:
        """Return the highest stored ``section_order`` for an email, 0 if none."""
        pass


class SqlEmailStore(EmailStore):
    """SQLAlchemy-backed store for the ``emails`` and ``email_sections`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert_email(self, email: EmailPayload) -> int:
        row = Email(
            subject=email.subject,
            sender=email.sender,
            recipient=list(email.recipient),
            cc=list(email.cc),
            bcc=list(email.bcc),
            body=email.body,
            status=EmailStatus.PENDING.value,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    email_id = row.id
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Error inserting email", error=describe_error(exc))
            raise StoreError(f"Failed to insert email: {describe_error(exc)}", cause=exc) from exc

        logger.info("Inserted email", email_id=email_id)
        return email_id

    async def insert_section(self, section: EmailSection) -> None:
        row = EmailSectionRow(
            email_id=section.email_id,
            section_content=section.section_content,
            embedding=section.embedding,
            section_order=section.section_order,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(row)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Error inserting email section",
                email_id=section.email_id,
                section_order=section.section_order,
                error=describe_error(exc),
            )
            raise StoreError(
                f"Failed to insert email section: {describe_error(exc)}",
                email_id=section.email_id,
                section_order=section.section_order,
                cause=exc,
            ) from exc

    async def update_status(self, email_id: int, status: EmailStatus) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(
                        update(Email).where(Email.id == email_id).values(status=status.value)
                    )
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Error updating email status", email_id=email_id, status=status.value, error=describe_error(exc)
            )
            raise StoreError(
                f"Failed to update email status: {describe_error(exc)}", email_id=email_id, cause=exc
            ) from exc

    async def get_email(self, email_id: int) -> Optional[StoredEmail]:
        try:
            async with self.session_factory() as session:
                row = await session.get(Email, email_id)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(f"Failed to load email: {describe_error(exc)}", email_id=email_id, cause=exc) from exc

        if row is None:
            return None
        return StoredEmail(
            id=row.id,
            subject=row.subject,
            sender=row.sender,
            recipient=list(row.recipient or []),
            cc=list(row.cc or []),
            bcc=list(row.bcc or []),
            body=row.body,
            status=EmailStatus(row.status),
            created_at=row.created_at,
        )

    async def count_sections(self, email_id: int) -> int:
        query = select(func.count()).select_from(EmailSectionRow).where(EmailSectionRow.email_id == email_id)
        return await self._scalar(query, email_id)

    async def last_section_order(self, email_id: int) -> int:
        query = select(func.max(EmailSectionRow.section_order)).where(EmailSectionRow.email_id == email_id)
        return await self._scalar(query, email_id)

    async def _scalar(self, query, email_id: int) -> int:
        """Run an aggregate query, treating NULL as 0."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                value = result.scalar()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(
                f"Failed to query email sections: {describe_error(exc)}", email_id=email_id, cause=exc
            ) from exc
        return int(value or 0)
