"""
Lime Core Backend — API Routes Package
========================================

What:  HTTP route handlers, one module per resource.
How:   Each module declares a route table (`ROUTES`) and registers it on its
       APIRouter; `main.create_app()` includes the routers.

Route Inventory:
    - auth.py:       POST /auth/authenticate, GET /auth/google,
                     GET /auth/google/callback, GET /auth/me
    - segments.py:   /segments CRUD, /segments/{id}/entities,
                     /segments/{id}/analytics, /segments/entity/{entity_id}
    - templates.py:  /templates CRUD, POST /templates/{id}/duplicate
    - health.py:     GET /health (not enveloped)

Handlers stay thin: read the tenant key and inputs, make one service call,
wrap the outcome with `lime_core.envelope.respond`.
"""
