"""
Lime Core Backend — Segmentation Service
==========================================

What:  Tenant-scoped CRUD for audience segments plus their stored membership:
       which entities are in a segment, which segments hold an entity, and
       membership counts over time.
How:   Every query is constrained by `organization_id`. Membership is plain
       store/retrieve; `criteria` is persisted as given and never evaluated.
Who:   Constructed per request by `dependencies.get_segmentation_service`;
       called by the /segments route handlers.

Error Handling Strategy:
    Same as TemplateService: DatabaseError with a fixed SEGMENT_* code for
    persistence faults; NotFoundError (404) for membership operations on a
    segment that is absent in the caller's organization.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import case, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lime_core.exceptions import DatabaseError, NotFoundError
from lime_core.models.organization import utcnow
from lime_core.models.segment import Segment, SegmentMembership
from lime_core.schemas.segment import (
    SegmentAnalytics,
    SegmentCreate,
    SegmentResponse,
    SegmentUpdate,
)

logger = logging.getLogger(__name__)


class SegmentationService:
    """Segment and membership operations for one request's database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, segment_id: str, organization_id: str) -> Optional[Segment]:
        result = await self.db.execute(
            select(Segment).where(
                Segment.id == segment_id,
                Segment.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def _require(self, segment_id: str, organization_id: str) -> Segment:
        segment = await self._fetch(segment_id, organization_id)
        if segment is None:
            raise NotFoundError(
                resource="Segment",
                resource_id=segment_id,
                code="SEGMENT_NOT_FOUND",
            )
        return segment

    # ── Segment CRUD ──────────────────────────────────────────────────────

    async def create_segment(
        self, organization_id: str, data: SegmentCreate
    ) -> SegmentResponse:
        try:
            segment = Segment(organization_id=organization_id, **data.model_dump())
            self.db.add(segment)
            await self.db.flush()
            await self.db.refresh(segment)
            logger.info("Segment created: %s (org=%s)", segment.id, organization_id)
            return SegmentResponse.model_validate(segment)
        except Exception as e:
            logger.error("Error creating segment: %s", str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to create segment",
                code="SEGMENT_CREATE_ERROR",
                context={"organization_id": organization_id, "error_type": type(e).__name__},
            )

    async def get_segment(
        self, segment_id: str, organization_id: str
    ) -> Optional[SegmentResponse]:
        try:
            segment = await self._fetch(segment_id, organization_id)
            return SegmentResponse.model_validate(segment) if segment else None
        except Exception as e:
            logger.error("Error fetching segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch segment",
                code="SEGMENT_FETCH_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def update_segment(
        self, segment_id: str, organization_id: str, data: SegmentUpdate
    ) -> Optional[SegmentResponse]:
        try:
            segment = await self._fetch(segment_id, organization_id)
            if segment is None:
                return None

            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(segment, field, value)

            await self.db.flush()
            await self.db.refresh(segment)
            logger.info("Segment updated: %s (org=%s)", segment_id, organization_id)
            return SegmentResponse.model_validate(segment)
        except Exception as e:
            logger.error("Error updating segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to update segment",
                code="SEGMENT_UPDATE_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def delete_segment(self, segment_id: str, organization_id: str) -> bool:
        """
        Delete a segment and its membership rows.

        Returns False when there was nothing to delete, so repeating the
        call is harmless.
        """
        try:
            result = await self.db.execute(
                delete(Segment).where(
                    Segment.id == segment_id,
                    Segment.organization_id == organization_id,
                )
            )
            if not result.rowcount:
                return False

            # The FK cascades on PostgreSQL; SQLite only enforces it with
            # PRAGMA foreign_keys, so memberships are removed explicitly
            await self.db.execute(
                delete(SegmentMembership).where(
                    SegmentMembership.segment_id == segment_id,
                    SegmentMembership.organization_id == organization_id,
                )
            )
            logger.info("Segment deleted: %s (org=%s)", segment_id, organization_id)
            return True
        except Exception as e:
            logger.error("Error deleting segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to delete segment",
                code="SEGMENT_DELETE_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def list_segments(
        self,
        organization_id: str,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
    ) -> List[SegmentResponse]:
        """List segments, most recently updated first; `search` matches the name."""
        try:
            query = select(Segment).where(Segment.organization_id == organization_id)
            if search:
                query = query.where(Segment.name.icontains(search, autoescape=True))
            query = (
                query.order_by(desc(Segment.updated_at), desc(Segment.id))
                .limit(limit)
                .offset(offset)
            )
            result = await self.db.execute(query)
            return [SegmentResponse.model_validate(s) for s in result.scalars().all()]
        except Exception as e:
            logger.error("Error listing segments: %s", str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch segments",
                code="SEGMENTS_FETCH_ERROR",
                context={"organization_id": organization_id, "error_type": type(e).__name__},
            )

    # ── Membership Views ──────────────────────────────────────────────────

    async def get_entities_in_segment(
        self, segment_id: str, organization_id: str
    ) -> List[str]:
        """Entity ids in the segment, in the order they were added."""
        try:
            await self._require(segment_id, organization_id)
            result = await self.db.execute(
                select(SegmentMembership.entity_id)
                .where(
                    SegmentMembership.segment_id == segment_id,
                    SegmentMembership.organization_id == organization_id,
                )
                .order_by(SegmentMembership.added_at, SegmentMembership.entity_id)
            )
            return list(result.scalars().all())
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Error fetching entities for segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch segment entities",
                code="SEGMENT_ENTITIES_FETCH_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def get_segment_analytics(
        self, segment_id: str, organization_id: str
    ) -> SegmentAnalytics:
        """
        Membership statistics computed in a single aggregate query:

            SELECT count(*),
                   count(CASE WHEN added_at >= now - 7d  THEN 1 END),
                   count(CASE WHEN added_at >= now - 30d THEN 1 END),
                   max(added_at)
            FROM segment_memberships WHERE segment_id = :id AND organization_id = :org
        """
        try:
            await self._require(segment_id, organization_id)

            now = utcnow()
            week_ago = now - timedelta(days=7)
            month_ago = now - timedelta(days=30)
            result = await self.db.execute(
                select(
                    func.count(SegmentMembership.id),
                    func.count(case((SegmentMembership.added_at >= week_ago, 1))),
                    func.count(case((SegmentMembership.added_at >= month_ago, 1))),
                    func.max(SegmentMembership.added_at),
                ).where(
                    SegmentMembership.segment_id == segment_id,
                    SegmentMembership.organization_id == organization_id,
                )
            )
            total, last_7, last_30, last_added = result.one()

            return SegmentAnalytics(
                segment_id=segment_id,
                entity_count=total or 0,
                added_last_7_days=last_7 or 0,
                added_last_30_days=last_30 or 0,
                last_entity_added_at=last_added,
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Error computing analytics for segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch segment analytics",
                code="SEGMENT_ANALYTICS_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def get_segments_for_entity(
        self, entity_id: str, organization_id: str
    ) -> List[SegmentResponse]:
        """Segments of this organization that contain `entity_id`."""
        try:
            result = await self.db.execute(
                select(Segment)
                .join(SegmentMembership, SegmentMembership.segment_id == Segment.id)
                .where(
                    SegmentMembership.entity_id == entity_id,
                    SegmentMembership.organization_id == organization_id,
                    Segment.organization_id == organization_id,
                )
                .order_by(desc(Segment.updated_at), desc(Segment.id))
            )
            return [SegmentResponse.model_validate(s) for s in result.scalars().all()]
        except Exception as e:
            logger.error("Error fetching segments for entity %s: %s", entity_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to fetch segments for entity",
                code="ENTITY_SEGMENTS_FETCH_ERROR",
                context={"entity_id": entity_id, "error_type": type(e).__name__},
            )

    # ── Membership Changes ────────────────────────────────────────────────

    async def add_entities(
        self, segment_id: str, organization_id: str, entity_ids: List[str]
    ) -> int:
        """
        Add entities to a segment. Entities already present (or repeated in
        the input) are skipped.

        Returns:
            Number of memberships actually created.
        """
        try:
            await self._require(segment_id, organization_id)

            wanted = list(dict.fromkeys(entity_ids))
            existing = await self.db.execute(
                select(SegmentMembership.entity_id).where(
                    SegmentMembership.segment_id == segment_id,
                    SegmentMembership.organization_id == organization_id,
                    SegmentMembership.entity_id.in_(wanted),
                )
            )
            present = set(existing.scalars().all())

            new_ids = [entity_id for entity_id in wanted if entity_id not in present]
            self.db.add_all(
                SegmentMembership(
                    organization_id=organization_id,
                    segment_id=segment_id,
                    entity_id=entity_id,
                )
                for entity_id in new_ids
            )
            await self.db.flush()
            logger.info(
                "Added %d entities to segment %s (%d already present)",
                len(new_ids),
                segment_id,
                len(wanted) - len(new_ids),
            )
            return len(new_ids)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Error adding entities to segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to add entities to segment",
                code="SEGMENT_ENTITIES_ADD_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )

    async def remove_entity(
        self, segment_id: str, organization_id: str, entity_id: str
    ) -> bool:
        """True if the entity was a member and has been removed."""
        try:
            await self._require(segment_id, organization_id)
            result = await self.db.execute(
                delete(SegmentMembership).where(
                    SegmentMembership.segment_id == segment_id,
                    SegmentMembership.organization_id == organization_id,
                    SegmentMembership.entity_id == entity_id,
                )
            )
            return (result.rowcount or 0) > 0
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Error removing entity from segment %s: %s", segment_id, str(e), exc_info=True)
            await self.db.rollback()
            raise DatabaseError(
                message="Failed to remove entity from segment",
                code="SEGMENT_ENTITY_REMOVE_ERROR",
                context={"segment_id": segment_id, "error_type": type(e).__name__},
            )
