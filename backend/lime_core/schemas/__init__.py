# Schemas package init
"""
Lime Core Backend — API Contracts
===================================

Pydantic models that define request bodies, query parameters and the
payloads carried inside the `ApiResponse` envelope. Kept separate from the
SQLAlchemy models so the API contract can evolve independently of the
schema (e.g. `organization_id` never appears in a request body).
"""
