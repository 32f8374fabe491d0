"""API-specific test fixtures.

Route handlers get the in-memory repository through
``app.dependency_overrides``, so no database is needed.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from app.api.deps import get_content_repository
from app.api.routes import api_router
from app.core.exceptions import ContentError, ContentValidationError
from app.main import (
    content_error_handler,
    content_validation_handler,
    generic_exception_handler,
    http_exception_handler,
)
from app.middleware.correlation import setup_correlation_middleware

EDITOR = {"X-Actor-Id": "editor-1", "X-Actor-Role": "editor"}
ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}
USER = {"X-Actor-Id": "user-1", "X-Actor-Role": "user"}


@pytest.fixture
def api_app(repo):
    """FastAPI app wired like app.main.create_app, minus the lifespan."""
    app = FastAPI()
    setup_correlation_middleware(app)

    app.exception_handler(ContentValidationError)(content_validation_handler)
    app.exception_handler(ContentError)(content_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")
    app.dependency_overrides[get_content_repository] = lambda: repo
    return app


@pytest.fixture
def api_client(api_app):
    with TestClient(api_app, raise_server_exceptions=False) as client:
        yield client
