# Middleware package init
"""
Fellowship Backend — Middleware Package
========================================

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - Rate limit rejects abusive clients before any work is done
    - Request ID assigns the correlation id every later log line carries
    - Access log records method, path, status and duration per request
"""
