"""SQLAlchemy ORM models for accounts, forms, leads and usage accounting."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON, BigInteger, Date, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smartresponse.db.base import Base
from smartresponse.db.enums import (
    AccountRole, ImageSize, LeadStatus, ResultFormat,
)


# =============================================================================
# Accounts
# =============================================================================

class Account(Base):
    """
    A form owner.

    Quota columns are nullable: NULL means unlimited. Accounts are
    deactivated via is_active, never deleted.
    """
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=AccountRole.USER.value, nullable=False
    )
    max_forms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_leads: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_storage_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    daily_test_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    can_publish_forms: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    forms: Mapped[list["Form"]] = relationship(back_populates="owner")

    @property
    def is_superadmin(self) -> bool:
        return self.role == AccountRole.SUPERADMIN.value


class DailyTestUsage(Base):
    """
    Per-account AI test counter.

    One row per account; the first increment on a new UTC day resets
    test_count instead of creating another row.
    """
    __tablename__ = "daily_test_usage"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    test_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# =============================================================================
# Forms & Leads
# =============================================================================

class Form(Base):
    """
    A published lead-capture form.

    lead_count is a display counter only; quota checks count Lead rows.
    """
    __tablename__ = "forms"
    __table_args__ = (
        Index("idx_forms_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=False, nullable=False)
    lead_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    result_format: Mapped[str] = mapped_column(
        String(20), default=ResultFormat.TEXT.value, nullable=False
    )
    system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_size: Mapped[str] = mapped_column(
        String(20), default=ImageSize.SQUARE.value, nullable=False
    )
    notify_on_new_lead: Mapped[bool] = mapped_column(default=True, nullable=False)
    send_email_to_respondent: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owner: Mapped["Account"] = relationship(back_populates="forms")
    leads: Mapped[list["Lead"]] = relationship(
        back_populates="form", cascade="all, delete-orphan", passive_deletes=True
    )
    knowledge_files: Mapped[list["KnowledgeFile"]] = relationship(
        back_populates="form", cascade="all, delete-orphan", passive_deletes=True
    )


class Lead(Base):
    """
    A captured visitor.

    At most one row per (form_id, email); the constraint is the duplicate
    signal under concurrent submissions.
    """
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("form_id", "email", name="uq_leads_form_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=LeadStatus.COMPLETED.value, nullable=False
    )
    custom_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    form: Mapped["Form"] = relationship(back_populates="leads")


class KnowledgeFile(Base):
    """Reference document whose text is appended to a form's prompt."""
    __tablename__ = "form_knowledge_files"
    __table_args__ = (
        Index("idx_knowledge_files_form", "form_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    form: Mapped["Form"] = relationship(back_populates="knowledge_files")


# =============================================================================
# System Settings
# =============================================================================

class SystemSetting(Base):
    """Process-wide key/value setting (model selection, global prompts)."""
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
