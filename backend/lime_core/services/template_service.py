"""
Lime Core Backend — Template Service
======================================

What:  Tenant-scoped CRUD, filtered listing and duplication of messaging
       templates.
How:   One persistence operation per public method on the AsyncSession the
       service was constructed with. Every query carries
       `organization_id == :org`; optional filters are AND-ed onto it.
Who:   Constructed per request by `dependencies.get_template_service`;
       called by the /templates route handlers.

Error Handling Strategy:
    Persistence faults are logged and re-raised as DatabaseError with a fixed
    operation code (TEMPLATE_CREATE_ERROR, TEMPLATE_FETCH_ERROR, ...).
    NotFoundError raised mid-operation (duplicate of a missing source)
    propagates unchanged so it reaches the client as a 404.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lime_core.exceptions import DatabaseError, NotFoundError
from lime_core.models.template import Template
from lime_core.schemas.template import (
    TemplateCreate,
    TemplateFilters,
    TemplateResponse,
    TemplateUpdate,
)

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"

# Identity and timestamps are never copied by duplicate_template
_NON_COPYABLE_FIELDS = {"id", "created_at", "updated_at"}


class TemplateService:
    """Messaging template operations for one request's database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, template_id: str, organization_id: str) -> Optional[Template]:
        result = await self.db.execute(
            select(Template).where(
                Template.id == template_id,
                Template.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_template(
        self, organization_id: str, data: TemplateCreate
    ) -> TemplateResponse:
        """Insert a template owned by `organization_id`."""
        try:
            template = Template(organization_id=organization_id, **data.model_dump())
            self.db.add(template)
            await self.db.flush()
            await self.db.refresh(template)
            logger.info("Template created: %s (org=%s)", template.id, organization_id)
            return TemplateResponse.model_validate(template)
        except Exception as e:
            logger.error("Error creating template: %s", str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to create template",
                code="TEMPLATE_CREATE_ERROR",
                context={"organization_id": organization_id, "error_type": type(e).__name__},
            )

    async def get_template(
        self, template_id: str, organization_id: str
    ) -> Optional[TemplateResponse]:
        """Returns None when the template does not exist in this organization."""
        try:
            template = await self._fetch(template_id, organization_id)
            return TemplateResponse.model_validate(template) if template else None
        except Exception as e:
            logger.error("Error fetching template %s: %s", template_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch template",
                code="TEMPLATE_FETCH_ERROR",
                context={"template_id": template_id, "error_type": type(e).__name__},
            )

    async def update_template(
        self, template_id: str, organization_id: str, data: TemplateUpdate
    ) -> Optional[TemplateResponse]:
        """
        Apply a partial update. Only fields present in the request body are
        written; returns None when the template is absent.
        """
        try:
            template = await self._fetch(template_id, organization_id)
            if template is None:
                return None

            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(template, field, value)

            await self.db.flush()
            await self.db.refresh(template)
            logger.info("Template updated: %s (org=%s)", template_id, organization_id)
            return TemplateResponse.model_validate(template)
        except Exception as e:
            logger.error("Error updating template %s: %s", template_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to update template",
                code="TEMPLATE_UPDATE_ERROR",
                context={"template_id": template_id, "error_type": type(e).__name__},
            )

    async def delete_template(self, template_id: str, organization_id: str) -> bool:
        """True if a row was removed, False if there was nothing to delete."""
        try:
            result = await self.db.execute(
                delete(Template).where(
                    Template.id == template_id,
                    Template.organization_id == organization_id,
                )
            )
            deleted = (result.rowcount or 0) > 0
            if deleted:
                logger.info("Template deleted: %s (org=%s)", template_id, organization_id)
            return deleted
        except Exception as e:
            logger.error("Error deleting template %s: %s", template_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to delete template",
                code="TEMPLATE_DELETE_ERROR",
                context={"template_id": template_id, "error_type": type(e).__name__},
            )

    async def get_templates(
        self,
        organization_id: str,
        limit: int = 100,
        offset: int = 0,
        filters: Optional[TemplateFilters] = None,
    ) -> List[TemplateResponse]:
        """
        List an organization's templates, most recently updated first.

        Filters:
            channel: exact match
            status:  exact match
            search:  case-insensitive literal substring of name OR content
                     (% and _ match themselves)
        """
        try:
            query = select(Template).where(Template.organization_id == organization_id)

            if filters is not None:
                if filters.channel:
                    query = query.where(Template.channel == filters.channel)
                if filters.status:
                    query = query.where(Template.status == filters.status)
                if filters.search:
                    query = query.where(
                        or_(
                            Template.name.icontains(filters.search, autoescape=True),
                            Template.content.icontains(filters.search, autoescape=True),
                        )
                    )

            query = (
                query.order_by(desc(Template.updated_at), desc(Template.id))
                .limit(limit)
                .offset(offset)
            )

            result = await self.db.execute(query)
            return [TemplateResponse.model_validate(t) for t in result.scalars().all()]
        except Exception as e:
            logger.error("Error fetching templates: %s", str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch templates",
                code="TEMPLATES_FETCH_ERROR",
                context={"organization_id": organization_id, "error_type": type(e).__name__},
            )

    async def duplicate_template(
        self, template_id: str, organization_id: str
    ) -> TemplateResponse:
        """
        Create a copy of a template within the same organization.

        Every column except id/created_at/updated_at is copied; the name gets
        a " (Copy)" suffix.
        Names too long to fit the column with the suffix are cut first, so the
        copy is not always exactly "<name> (Copy)".

        Raises:
            NotFoundError: source template absent (→ 404)
            DatabaseError: persistence failure (→ 500)
        """
        try:
            source = await self._fetch(template_id, organization_id)
            if source is None:
                raise NotFoundError(
                    resource="Template",
                    resource_id=template_id,
                    code="TEMPLATE_NOT_FOUND",
                )

            values: Dict[str, Any] = {
                column.key: getattr(source, column.key)
                for column in Template.__table__.columns
                if column.key not in _NON_COPYABLE_FIELDS
            }
            max_name = Template.__table__.c.name.type.length - len(COPY_SUFFIX)
            values["name"] = f"{source.name[:max_name]}{COPY_SUFFIX}"
            values["variables"] = list(source.variables or [])

            copy = Template(**values)
            self.db.add(copy)
            await self.db.flush()
            await self.db.refresh(copy)
            logger.info("Template %s duplicated as %s", template_id, copy.id)
            return TemplateResponse.model_validate(copy)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Error duplicating template %s: %s", template_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to duplicate template",
                code="TEMPLATE_DUPLICATE_ERROR",
                context={"template_id": template_id, "error_type": type(e).__name__},
            )
