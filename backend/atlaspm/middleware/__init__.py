# Middleware package init
"""
AtlasPM Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any work is done
    2. Request ID: every later log line can carry the correlation id
    3. Logging: sees the final status and the full duration

Responses travel the chain in reverse. A 429 is produced before a request
id exists, so rate-limited responses carry no X-Request-ID.
"""
