"""
Lime Core Backend — Messaging Template SQLAlchemy Model
=========================================================

What:  ORM model for the `templates` table: reusable message bodies for
       email, SMS, push and WhatsApp campaigns.
Who:   Used by TemplateService for tenant-scoped CRUD and duplication.

Query Patterns:
    - List an organization's templates, most recently edited first:
      WHERE organization_id = :org ORDER BY updated_at DESC
      → idx_templates_org_updated
    - Fetch one: WHERE id = :id AND organization_id = :org
"""

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lime_core.database import Base
from lime_core.models.organization import generate_id, utcnow


class ChannelType(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    WHATSAPP = "WHATSAPP"


class TemplateStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class Template(Base):
    """A message template owned by one organization."""

    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Only meaningful for EMAIL; NULL for the other channels
    subject: Mapped[Optional[str]] = mapped_column(String(998), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    channel: Mapped[ChannelType] = mapped_column(
        Enum(ChannelType, native_enum=False, length=16),
        nullable=False,
        default=ChannelType.EMAIL,
    )
    status: Mapped[TemplateStatus] = mapped_column(
        Enum(TemplateStatus, native_enum=False, length=16),
        nullable=False,
        default=TemplateStatus.DRAFT,
    )
    # Placeholder names referenced by the content, e.g. ["first_name"]
    variables: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_templates_org_updated", "organization_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Template(id={self.id}, name='{self.name}', "
            f"channel='{self.channel}', status='{self.status}')>"
        )
