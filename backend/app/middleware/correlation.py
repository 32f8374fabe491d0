"""Request correlation ids.

Every response carries ``X-Request-ID``; an incoming value is echoed back,
otherwise a UUID4 is generated. The id is picked up by the structlog
processor in app.core.logging and by the exception handlers.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI

REQUEST_ID_HEADER = "X-Request-ID"


def setup_correlation_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=REQUEST_ID_HEADER,
        generator=lambda: str(uuid.uuid4()),
        validator=None,
        transformer=lambda value: value,
    )


def get_correlation_id() -> str | None:
    """Correlation id of the current request, or None outside a request."""
    return correlation_id.get(None)


__all__ = ["REQUEST_ID_HEADER", "get_correlation_id", "setup_correlation_middleware"]
