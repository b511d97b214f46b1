"""
Lime Core Backend — Segment Schemas
=====================================

What:  Pydantic models for segment bodies, membership changes, analytics
       and responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from lime_core.config import settings


class SegmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    criteria: Dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque audience rules; stored as-is",
    )


class SegmentUpdate(BaseModel):
    """Partial update: only fields present in the body are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    criteria: Optional[Dict[str, Any]] = None

    @field_validator("name", "criteria")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class SegmentListParams(BaseModel):
    """Validated query parameters for GET /segments."""
    limit: int = Field(default=settings.default_page_size, ge=1, le=settings.max_page_size)
    offset: int = Field(default=0, ge=0)
    search: Optional[str] = Field(default=None, max_length=255)


class SegmentEntitiesAdd(BaseModel):
    """Body of POST /segments/{id}/entities."""
    entity_ids: List[str] = Field(min_length=1, max_length=10_000)

    @field_validator("entity_ids")
    @classmethod
    def validate_entity_ids(cls, v: List[str]) -> List[str]:
        cleaned = []
        for entity_id in v:
            entity_id = entity_id.strip()
            if not entity_id:
                raise ValueError("entity ids must not be blank")
            if len(entity_id) > 255:
                raise ValueError("entity ids must be at most 255 characters")
            cleaned.append(entity_id)
        return cleaned


class SegmentResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    criteria: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SegmentAnalytics(BaseModel):
    """
    What:  Membership statistics for one segment.
    Who:   Returned by GET /segments/{id}/analytics.
    """
    segment_id: str
    entity_count: int = Field(description="Current number of member entities")
    added_last_7_days: int
    added_last_30_days: int
    last_entity_added_at: Optional[datetime] = None
