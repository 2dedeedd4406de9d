"""
WaterTrack Backend: Middleware Package
======================================

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip/CORS] → Route Handler

    1. Rate Limit first: abusive clients are answered with 429 before any work
    2. Request ID: correlation ID stored in a ContextVar for every log line
    3. Logging: one access line per request, with status and duration

Responses pass back through the chain in reverse order, so the request ID
header and the access log line see the final status code.
"""
