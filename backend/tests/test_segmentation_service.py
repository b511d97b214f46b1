"""
Lime Core Backend — Segmentation Service Tests
================================================

What:  SegmentationService against an in-memory SQLite database.

What we test:
    ✅ CRUD round trip within one organization
    ✅ Tenant isolation on every read and write
    ✅ Delete returns True then False
    ✅ Membership add/remove, duplicates skipped, analytics counts
    ✅ Name search treats % and _ literally
    ✅ Persistence faults roll back and become DatabaseError with a SEGMENT_* code
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from lime_core.exceptions import DatabaseError, NotFoundError
from lime_core.models.organization import utcnow
from lime_core.models.segment import SegmentMembership
from lime_core.schemas.segment import SegmentCreate, SegmentUpdate
from lime_core.services.segmentation_service import SegmentationService


def _segment(name="VIP customers", **overrides):
    data = {"name": name, "description": "Spent over 500", "criteria": {"min_spend": 500}}
    data.update(overrides)
    return SegmentCreate(**data)


class TestSegmentCrud:

    @pytest.mark.asyncio
    async def test_create_then_get(self, db_session, organization):
        service = SegmentationService(db_session)

        created = await service.create_segment(organization.id, _segment())
        fetched = await service.get_segment(created.id, organization.id)

        assert fetched is not None
        assert fetched.id == created.id
        assert fetched.organization_id == organization.id
        assert fetched.criteria == {"min_spend": 500}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, db_session, organization):
        service = SegmentationService(db_session)
        assert await service.get_segment("missing-id", organization.id) is None

    @pytest.mark.asyncio
    async def test_other_organization_cannot_see_segment(
        self, db_session, organization, other_organization
    ):
        service = SegmentationService(db_session)
        created = await service.create_segment(organization.id, _segment())

        assert await service.get_segment(created.id, other_organization.id) is None
        assert await service.list_segments(other_organization.id) == []
        assert await service.update_segment(
            created.id, other_organization.id, SegmentUpdate(name="Hijacked")
        ) is None
        assert await service.delete_segment(created.id, other_organization.id) is False

        still_there = await service.get_segment(created.id, organization.id)
        assert still_there.name == "VIP customers"

    @pytest.mark.asyncio
    async def test_update_only_writes_given_fields(self, db_session, organization):
        service = SegmentationService(db_session)
        created = await service.create_segment(organization.id, _segment())

        updated = await service.update_segment(
            created.id, organization.id, SegmentUpdate(name="Top spenders")
        )

        assert updated.name == "Top spenders"
        assert updated.description == "Spent over 500"
        assert updated.criteria == {"min_spend": 500}

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, db_session, organization):
        service = SegmentationService(db_session)
        created = await service.create_segment(organization.id, _segment())

        assert await service.delete_segment(created.id, organization.id) is True
        assert await service.delete_segment(created.id, organization.id) is False
        assert await service.get_segment(created.id, organization.id) is None

    @pytest.mark.asyncio
    async def test_list_search_and_pagination(self, db_session, organization):
        service = SegmentationService(db_session)
        for name in ("Churn risk", "VIP customers", "VIP prospects"):
            await service.create_segment(organization.id, _segment(name=name))

        vip = await service.list_segments(organization.id, search="vip")
        assert sorted(s.name for s in vip) == ["VIP customers", "VIP prospects"]

        first_page = await service.list_segments(organization.id, limit=2, offset=0)
        second_page = await service.list_segments(organization.id, limit=2, offset=2)
        assert len(first_page) == 2
        assert len(second_page) == 1
        assert {s.id for s in first_page}.isdisjoint({s.id for s in second_page})

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, db_session, organization):
        service = SegmentationService(db_session)
        for name in ("100% loyal", "VIP_gold", "VIPsilver"):
            await service.create_segment(organization.id, _segment(name=name))

        percent = await service.list_segments(organization.id, search="%")
        underscore = await service.list_segments(organization.id, search="vip_")

        assert [s.name for s in percent] == ["100% loyal"]
        assert [s.name for s in underscore] == ["VIP_gold"]


class TestSegmentMembership:

    @pytest.mark.asyncio
    async def test_add_skips_existing_and_repeated_ids(self, db_session, organization):
        service = SegmentationService(db_session)
        segment = await service.create_segment(organization.id, _segment())

        assert await service.add_entities(segment.id, organization.id, ["c1", "c2", "c2"]) == 2
        assert await service.add_entities(segment.id, organization.id, ["c2", "c3"]) == 1

        entities = await service.get_entities_in_segment(segment.id, organization.id)
        assert sorted(entities) == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_membership_on_missing_segment_raises(self, db_session, organization):
        service = SegmentationService(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_entities_in_segment("missing-id", organization.id)
        assert exc_info.value.message == "Segment not found"
        assert exc_info.value.status_code == 404

        with pytest.raises(NotFoundError):
            await service.add_entities("missing-id", organization.id, ["c1"])

    @pytest.mark.asyncio
    async def test_segments_for_entity(self, db_session, organization, other_organization):
        service = SegmentationService(db_session)
        vip = await service.create_segment(organization.id, _segment(name="VIP"))
        churn = await service.create_segment(organization.id, _segment(name="Churn"))
        foreign = await service.create_segment(other_organization.id, _segment(name="Foreign"))

        await service.add_entities(vip.id, organization.id, ["c1"])
        await service.add_entities(churn.id, organization.id, ["c2"])
        await service.add_entities(foreign.id, other_organization.id, ["c1"])

        segments = await service.get_segments_for_entity("c1", organization.id)
        assert [s.name for s in segments] == ["VIP"]

    @pytest.mark.asyncio
    async def test_remove_entity(self, db_session, organization):
        service = SegmentationService(db_session)
        segment = await service.create_segment(organization.id, _segment())
        await service.add_entities(segment.id, organization.id, ["c1"])

        assert await service.remove_entity(segment.id, organization.id, "c1") is True
        assert await service.remove_entity(segment.id, organization.id, "c1") is False
        assert await service.get_entities_in_segment(segment.id, organization.id) == []

    @pytest.mark.asyncio
    async def test_delete_removes_memberships(self, db_session, organization):
        service = SegmentationService(db_session)
        segment = await service.create_segment(organization.id, _segment())
        await service.add_entities(segment.id, organization.id, ["c1", "c2"])

        await service.delete_segment(segment.id, organization.id)

        assert await service.get_segments_for_entity("c1", organization.id) == []

    @pytest.mark.asyncio
    async def test_analytics_counts_by_age(self, db_session, organization):
        service = SegmentationService(db_session)
        segment = await service.create_segment(organization.id, _segment())
        now = utcnow()
        for entity_id, age in (("fresh", 1), ("recent", 10), ("old", 60)):
            db_session.add(
                SegmentMembership(
                    organization_id=organization.id,
                    segment_id=segment.id,
                    entity_id=entity_id,
                    added_at=now - timedelta(days=age),
                )
            )
        await db_session.flush()

        analytics = await service.get_segment_analytics(segment.id, organization.id)

        assert analytics.segment_id == segment.id
        assert analytics.entity_count == 3
        assert analytics.added_last_7_days == 1
        assert analytics.added_last_30_days == 2
        assert analytics.last_entity_added_at is not None

    @pytest.mark.asyncio
    async def test_analytics_for_empty_segment(self, db_session, organization):
        service = SegmentationService(db_session)
        segment = await service.create_segment(organization.id, _segment())

        analytics = await service.get_segment_analytics(segment.id, organization.id)

        assert analytics.entity_count == 0
        assert analytics.last_entity_added_at is None


class TestSegmentFaults:

    @pytest.mark.asyncio
    async def test_list_failure_raises_database_error(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("connection lost")
        service = SegmentationService(mock_db_session)

        with pytest.raises(DatabaseError) as exc_info:
            await service.list_segments("org-1")

        assert exc_info.value.code == "SEGMENTS_FETCH_ERROR"
        assert exc_info.value.message == "Failed to fetch segments"
        mock_db_session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_create_failure_raises_database_error(self, mock_db_session):
        mock_db_session.flush.side_effect = RuntimeError("disk full")
        service = SegmentationService(mock_db_session)

        with pytest.raises(DatabaseError) as exc_info:
            await service.create_segment("org-1", _segment())

        assert exc_info.value.code == "SEGMENT_CREATE_ERROR"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_delete_failure_midway_rolls_back(self, mock_db_session):
        deleted = MagicMock()
        deleted.rowcount = 1
        mock_db_session.execute.side_effect = [deleted, RuntimeError("lock timeout")]
        service = SegmentationService(mock_db_session)

        with pytest.raises(DatabaseError) as exc_info:
            await service.delete_segment("s-1", "org-1")

        assert exc_info.value.code == "SEGMENT_DELETE_ERROR"
        assert mock_db_session.execute.await_count == 2
        mock_db_session.rollback.assert_awaited_once()
