"""
Lime Core Backend — Segment Route Handlers
============================================

What:  /segments endpoints: CRUD, membership views and membership changes.
How:   Each handler takes the tenant key from the authenticated identity,
       makes exactly one SegmentationService call and wraps the outcome with
       `respond()`. The route table at the bottom binds handlers to paths.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from lime_core.dependencies import get_organization_id, get_segmentation_service
from lime_core.envelope import respond
from lime_core.routing import Route, error_responses, register_routes
from lime_core.schemas.envelope import ApiResponse
from lime_core.schemas.segment import (
    SegmentAnalytics,
    SegmentCreate,
    SegmentEntitiesAdd,
    SegmentListParams,
    SegmentResponse,
    SegmentUpdate,
)
from lime_core.services.segmentation_service import SegmentationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/segments", tags=["Segments"])


async def create_segment(
    body: SegmentCreate,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.create_segment(organization_id, body),
        success_message="Segment created successfully",
        fallback_message="An error occurred while creating the segment",
    )


async def list_segments(
    params: SegmentListParams = Depends(),
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.list_segments(
            organization_id,
            limit=params.limit,
            offset=params.offset,
            search=params.search,
        ),
        success_message="Segments retrieved successfully",
        fallback_message="An error occurred while retrieving segments",
    )


async def get_segment(
    segment_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.get_segment(segment_id, organization_id),
        success_message="Segment retrieved successfully",
        fallback_message="An error occurred while retrieving the segment",
        resource="Segment",
    )


async def update_segment(
    segment_id: str,
    body: SegmentUpdate,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.update_segment(segment_id, organization_id, body),
        success_message="Segment updated successfully",
        fallback_message="An error occurred while updating the segment",
        resource="Segment",
    )


async def delete_segment(
    segment_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.delete_segment(segment_id, organization_id),
        success_message=lambda deleted: (
            "Segment deleted successfully" if deleted
            else "Segment not found or already deleted"
        ),
        fallback_message="An error occurred while deleting the segment",
        error_data=False,
    )


async def get_entities_in_segment(
    segment_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.get_entities_in_segment(segment_id, organization_id),
        success_message="Entities in segment retrieved successfully",
        fallback_message="An error occurred while retrieving entities in the segment",
    )


async def add_entities_to_segment(
    segment_id: str,
    body: SegmentEntitiesAdd,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.add_entities(segment_id, organization_id, body.entity_ids),
        success_message="Entities added to segment successfully",
        fallback_message="An error occurred while adding entities to the segment",
    )


async def remove_entity_from_segment(
    segment_id: str,
    entity_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.remove_entity(segment_id, organization_id, entity_id),
        success_message=lambda removed: (
            "Entity removed from segment successfully" if removed
            else "Entity not in segment or already removed"
        ),
        fallback_message="An error occurred while removing the entity from the segment",
        error_data=False,
    )


async def get_segment_analytics(
    segment_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.get_segment_analytics(segment_id, organization_id),
        success_message="Segment analytics retrieved successfully",
        fallback_message="An error occurred while retrieving segment analytics",
    )


async def get_segments_for_entity(
    entity_id: str,
    organization_id: str = Depends(get_organization_id),
    service: SegmentationService = Depends(get_segmentation_service),
):
    return await respond(
        service.get_segments_for_entity(entity_id, organization_id),
        success_message="Segments for entity retrieved successfully",
        fallback_message="An error occurred while retrieving segments for the entity",
    )


# ── Route Table ───────────────────────────────────────────────────────────
ROUTES = [
    Route("POST", "", create_segment, ApiResponse[SegmentResponse], 201,
          "Create a segment", error_responses(400, 401, 403, 500)),
    Route("GET", "", list_segments, ApiResponse[List[SegmentResponse]], 200,
          "List segments", error_responses(400, 401, 403, 500)),
    Route("GET", "/entity/{entity_id}", get_segments_for_entity,
          ApiResponse[List[SegmentResponse]], 200,
          "List segments containing an entity", error_responses(401, 403, 500)),
    Route("GET", "/{segment_id}", get_segment, ApiResponse[SegmentResponse], 200,
          "Get a segment", error_responses(401, 403, 404, 500)),
    Route("PUT", "/{segment_id}", update_segment, ApiResponse[SegmentResponse], 200,
          "Update a segment", error_responses(400, 401, 403, 404, 500)),
    Route("DELETE", "/{segment_id}", delete_segment, ApiResponse[bool], 200,
          "Delete a segment", error_responses(401, 403, 500)),
    Route("GET", "/{segment_id}/entities", get_entities_in_segment,
          ApiResponse[List[str]], 200,
          "List entity ids in a segment", error_responses(401, 403, 404, 500)),
    Route("POST", "/{segment_id}/entities", add_entities_to_segment,
          ApiResponse[int], 200,
          "Add entities to a segment", error_responses(400, 401, 403, 404, 500)),
    Route("DELETE", "/{segment_id}/entities/{entity_id}", remove_entity_from_segment,
          ApiResponse[bool], 200,
          "Remove an entity from a segment", error_responses(401, 403, 404, 500)),
    Route("GET", "/{segment_id}/analytics", get_segment_analytics,
          ApiResponse[SegmentAnalytics], 200,
          "Segment membership analytics", error_responses(401, 403, 404, 500)),
]

register_routes(router, ROUTES)
