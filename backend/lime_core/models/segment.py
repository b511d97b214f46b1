"""
Lime Core Backend — Segment SQLAlchemy Models
===============================================

What:  Audience segments (`segments`) and their stored membership
       (`segment_memberships`).
How:   A segment is a named, tenant-owned bucket. Membership rows link a
       segment to external entity ids (contacts, accounts, ...); nothing here
       evaluates `criteria`, which is kept as an opaque JSON document for the
       clients that build segments.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from lime_core.database import Base
from lime_core.models.organization import generate_id, utcnow


class Segment(Base):
    """A named audience segment owned by one organization."""

    __tablename__ = "segments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    criteria: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_segments_org_updated", "organization_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Segment(id={self.id}, name='{self.name}')>"


class SegmentMembership(Base):
    """One entity's membership in one segment."""

    __tablename__ = "segment_memberships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    # Denormalized from the segment so entity lookups stay tenant-filtered
    # without a join
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    segment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("segments.id", ondelete="CASCADE"),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("segment_id", "entity_id", name="uq_segment_memberships_segment_entity"),
        Index("idx_segment_memberships_org_entity", "organization_id", "entity_id"),
    )
