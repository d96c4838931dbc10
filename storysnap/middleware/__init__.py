# Middleware package init
"""
StorySnap Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID shared by every log line of the request
       and echoed back as X-Request-ID
    2. Access Log: one line per request with status and duration, tagged
       with the request ID
"""
