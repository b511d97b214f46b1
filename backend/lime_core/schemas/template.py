"""
Lime Core Backend — Template Schemas
======================================

What:  Pydantic models for template create/update bodies, list filters and
       responses.
How:   `organization_id` is never part of a request body; it always comes
       from the authenticated identity.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from lime_core.config import settings
from lime_core.models.template import ChannelType, TemplateStatus


def _clean_variables(v: Optional[List[str]]) -> Optional[List[str]]:
    """Strips names, rejects blanks, drops duplicates (first occurrence wins)."""
    if v is None:
        return v
    seen: List[str] = []
    for name in v:
        name = name.strip()
        if not name:
            raise ValueError("variable names must not be blank")
        if name not in seen:
            seen.append(name)
    return seen


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, max_length=998)
    content: str = Field(default="", description="Message body; may reference {{variables}}")
    channel: ChannelType = ChannelType.EMAIL
    status: TemplateStatus = TemplateStatus.DRAFT
    variables: List[str] = Field(default_factory=list)

    @field_validator("variables")
    @classmethod
    def validate_variables(cls, v: List[str]) -> List[str]:
        return _clean_variables(v)


class TemplateUpdate(BaseModel):
    """Partial update: only fields present in the body are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, max_length=998)
    content: Optional[str] = None
    channel: Optional[ChannelType] = None
    status: Optional[TemplateStatus] = None
    variables: Optional[List[str]] = None

    @field_validator("variables")
    @classmethod
    def validate_variables(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_variables(v)

    @field_validator("name", "content", "channel", "status")
    @classmethod
    def reject_null(cls, v):
        """Non-nullable columns cannot be cleared with an explicit null."""
        if v is None:
            raise ValueError("field cannot be null")
        return v


class TemplateFilters(BaseModel):
    """Optional list filters, AND-ed with the tenant filter."""
    channel: Optional[ChannelType] = None
    status: Optional[TemplateStatus] = None
    search: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Case-insensitive match against name or content",
    )


class TemplateListParams(TemplateFilters):
    """Validated query parameters for GET /templates."""
    limit: int = Field(default=settings.default_page_size, ge=1, le=settings.max_page_size)
    offset: int = Field(default=0, ge=0)


class TemplateResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    subject: Optional[str] = None
    content: str
    channel: ChannelType
    status: TemplateStatus
    variables: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
