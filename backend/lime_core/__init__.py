"""
Lime Core Backend — Application Package
=========================================

What: Multi-tenant marketing backend: messaging templates, audience
      segments, and sign-in (password and Google).
Who:  Imported by uvicorn (`lime_core.main:app`), Alembic and pytest.

Layers:
    ┌─────────────────────────────────────┐
    │    Routes (HTTP, envelope)          │  ← lime_core.routes
    ├─────────────────────────────────────┤
    │    Services (tenant-scoped logic)   │  ← lime_core.services
    ├─────────────────────────────────────┤
    │    Models & Schemas                 │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │    Database (async sessions)        │  ← lime_core.database
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
