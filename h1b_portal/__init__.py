"""FastAPI application package for the H1-B Portal invitation service.

This package exposes the application factory used by the portal backend.
It wires cross-cutting middleware (request id, CORS) and mounts the API
routers. The invitation and questionnaire lifecycle lives in
`h1b_portal/logic/` and route handlers in `h1b_portal/routes/`.
"""

from __future__ import annotations

from h1b_portal.main import create_app

__all__ = ["create_app"]
