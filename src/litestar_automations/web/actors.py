"""Resolution of the acting user and workspace for API requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from litestar import Request

__all__ = ["USER_HEADER", "WORKSPACE_HEADER", "Actor", "actor_from_headers"]

USER_HEADER = "X-User-Id"
WORKSPACE_HEADER = "X-Workspace-Id"


@dataclass(frozen=True)
class Actor:
    """The user an API request acts as, and the workspace it acts in."""

    user_id: str
    workspace_id: str


def actor_from_headers(request: Request) -> Actor | None:
    """Resolve the actor from the ``X-User-Id`` and ``X-Workspace-Id`` headers.

    Only suitable behind a trusted gateway that sets these headers itself. Hosts with
    their own authentication pass a different resolver to the plugin config.

    Args:
        request: The incoming request.

    Returns:
        The actor, or None when either header is missing or blank.
    """
    user_id = (request.headers.get(USER_HEADER) or "").strip()
    workspace_id = (request.headers.get(WORKSPACE_HEADER) or "").strip()
    if not user_id or not workspace_id:
        return None
    return Actor(user_id=user_id, workspace_id=workspace_id)
