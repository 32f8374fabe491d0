"""Caller identity for FastAPI routes.

Authentication happens upstream (the edge proxy or the web app). This service
trusts the ``X-Actor-Id`` and ``X-Actor-Role`` headers it forwards; role
policy lives in ContentConfig and is enforced in app.api.deps.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from app.domain.content import Role

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


@dataclass(frozen=True)
class Actor:
    """Caller extracted from the forwarded identity headers."""

    actor_id: str | None
    role: Role

    @property
    def is_anonymous(self) -> bool:
        return self.actor_id is None


def _parse_role(raw: str | None) -> Role:
    if not raw:
        return Role.USER
    try:
        return Role(raw.strip().lower())
    except ValueError:
        # Unknown roles get the least privilege
        return Role.USER


async def get_current_actor(request: Request) -> Actor:
    """FastAPI dependency returning the caller. Anonymous callers are plain users."""
    actor_id = request.headers.get(ACTOR_ID_HEADER) or None
    if actor_id is None:
        return Actor(actor_id=None, role=Role.USER)
    return Actor(actor_id=actor_id, role=_parse_role(request.headers.get(ACTOR_ROLE_HEADER)))


async def require_actor(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Reject anonymous callers with 401."""
    if actor.is_anonymous:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor
