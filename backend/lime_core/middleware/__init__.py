# Middleware package init
"""
Lime Core Backend — Middleware Package
========================================

Middleware Chain (order matters):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    1. Request ID first: every response and log line, 429s included, carries it
    2. Rate Limit: reject abusive requests before any further processing
    3. Logging: access line with the request ID, status and duration
"""
