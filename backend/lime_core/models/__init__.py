# Models package init
"""
Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and the test suite's create_all rely on it).
"""

from lime_core.models.organization import Organization, OrganizationMember, User
from lime_core.models.segment import Segment, SegmentMembership
from lime_core.models.template import ChannelType, Template, TemplateStatus

__all__ = [
    "ChannelType",
    "Organization",
    "OrganizationMember",
    "Segment",
    "SegmentMembership",
    "Template",
    "TemplateStatus",
    "User",
]
