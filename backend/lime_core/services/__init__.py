# Services package init
"""
Lime Core Backend — Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.
How:   Each service is constructed with the request's AsyncSession (see
       `lime_core.dependencies`) and performs one persistence operation per
       public method, always filtered by the caller's organization id.

Service Inventory:
    - TemplateService:        messaging template CRUD, listing, duplication
    - SegmentationService:    segment CRUD and stored membership views
    - AuthService:            password auth, Google handshake, session tokens
    - GoogleIdentityProvider: HTTP calls to Google's OAuth endpoints
"""
