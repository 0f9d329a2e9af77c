# Middleware package init
"""
Botanica Backend — Middleware Package
=======================================

Middleware Chain:
    Request → [Request ID] → [Rate Limit] → [Access log] → [GZip] → [CORS] → Route

    Responses travel back through the same chain, so the request ID header
    and the logged status/duration reflect the final response.
"""
