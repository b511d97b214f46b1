"""
Lime Core Backend — Template Route Handlers
=============================================

What:  /templates endpoints: CRUD, filtered listing and duplication.
How:   Same shape as the segment handlers: tenant key from the token, one
       TemplateService call, outcome wrapped by `respond()`.
Who:   The campaign editor in the frontend.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from lime_core.dependencies import get_organization_id, get_template_service
from lime_core.envelope import respond
from lime_core.routing import Route, error_responses, register_routes
from lime_core.schemas.envelope import ApiResponse
from lime_core.schemas.template import (
    TemplateCreate,
    TemplateListParams,
    TemplateResponse,
    TemplateUpdate,
)
from lime_core.services.template_service import TemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["Templates"])


async def create_template(
    body: TemplateCreate,
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    return await respond(
        service.create_template(organization_id, body),
        success_message="Template created successfully",
        fallback_message="An error occurred while creating the template",
    )


async def list_templates(
    params: TemplateListParams = Depends(),
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    """Filters (channel, status, search) are AND-ed with the tenant filter."""
    return await respond(
        service.get_templates(
            organization_id,
            limit=params.limit,
            offset=params.offset,
            filters=params,
        ),
        success_message="Templates retrieved successfully",
        fallback_message="An error occurred while retrieving templates",
    )


async def get_template(
    template_id: str,
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    return await respond(
        service.get_template(template_id, organization_id),
        success_message="Template retrieved successfully",
        fallback_message="An error occurred while retrieving the template",
        resource="Template",
    )


async def update_template(
    template_id: str,
    body: TemplateUpdate,
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    return await respond(
        service.update_template(template_id, organization_id, body),
        success_message="Template updated successfully",
        fallback_message="An error occurred while updating the template",
        resource="Template",
    )


async def delete_template(
    template_id: str,
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    return await respond(
        service.delete_template(template_id, organization_id),
        success_message=lambda deleted: (
            "Template deleted successfully" if deleted
            else "Template not found or already deleted"
        ),
        fallback_message="An error occurred while deleting the template",
        error_data=False,
    )


async def duplicate_template(
    template_id: str,
    organization_id: str = Depends(get_organization_id),
    service: TemplateService = Depends(get_template_service),
):
    return await respond(
        service.duplicate_template(template_id, organization_id),
        success_message="Template duplicated successfully",
        fallback_message="An error occurred while duplicating the template",
    )


# ── Route Table ───────────────────────────────────────────────────────────
ROUTES = [
    Route("POST", "", create_template, ApiResponse[TemplateResponse], 201,
          "Create a template", error_responses(400, 401, 403, 500)),
    Route("GET", "", list_templates, ApiResponse[List[TemplateResponse]], 200,
          "List templates", error_responses(400, 401, 403, 500)),
    Route("GET", "/{template_id}", get_template, ApiResponse[TemplateResponse], 200,
          "Get a template", error_responses(401, 403, 404, 500)),
    Route("PUT", "/{template_id}", update_template, ApiResponse[TemplateResponse], 200,
          "Update a template", error_responses(400, 401, 403, 404, 500)),
    Route("DELETE", "/{template_id}", delete_template, ApiResponse[bool], 200,
          "Delete a template", error_responses(401, 403, 500)),
    Route("POST", "/{template_id}/duplicate", duplicate_template,
          ApiResponse[TemplateResponse], 201,
          "Duplicate a template", error_responses(401, 403, 404, 500)),
]

register_routes(router, ROUTES)
