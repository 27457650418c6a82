"""SQLAlchemy 2.0 models for the email store."""

from datetime import datetime
from typing import List

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    BigInteger, CheckConstraint, DateTime, ForeignKey, Identity, Index,
    Integer, JSON, String, Text, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, Mapped, mapped_column, DeclarativeBase
from sqlalchemy.sql import func

EMBEDDING_DIMENSIONS = 1536

# JSONB on Postgres, plain JSON elsewhere
AddressList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class Email(Base):
    """Email model."""

    __tablename__ = "emails"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(Text, nullable=False)
    recipient: Mapped[List[str]] = mapped_column(AddressList, nullable=False)
    cc: Mapped[List[str]] = mapped_column(AddressList, nullable=False, default=list)
    bcc: Mapped[List[str]] = mapped_column(AddressList, nullable=False, default=list)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", server_default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    sections: Mapped[List["EmailSection"]] = relationship(
        "EmailSection",
        back_populates="email",
        cascade="all, delete-orphan",
        order_by="EmailSection.section_order",
    )

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'complete', 'failed')", name="valid_email_status"),
        Index("idx_emails_created", "created_at", postgresql_ops={"created_at": "DESC"}),
        Index("idx_emails_status", "status"),
    )


class EmailSection(Base):
    """Embedded section of an email body."""

    __tablename__ = "email_sections"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    email_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("emails.id", ondelete="CASCADE"), nullable=False)
    section_content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[List[float]] = mapped_column(Vector(EMBEDDING_DIMENSIONS), nullable=False)
    section_order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    email: Mapped["Email"] = relationship("Email", back_populates="sections")

    __table_args__ = (
        UniqueConstraint("email_id", "section_order", name="uq_email_sections_email_order"),
        CheckConstraint("section_order >= 1", name="valid_section_order"),
        Index("idx_email_sections_email", "email_id"),
    )
