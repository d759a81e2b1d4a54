"""Exception handling for automation web endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar import Response
from litestar.status_codes import HTTP_404_NOT_FOUND

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

    from litestar_automations.exceptions import AutomationNotFoundError

__all__ = ["automation_not_found_handler"]


def automation_not_found_handler(
    _request: Request,
    exc: AutomationNotFoundError,
) -> Response:
    """Exception handler for AutomationNotFoundError.

    Args:
        _request: The Litestar request object.
        exc: The AutomationNotFoundError exception.

    Returns:
        A 404 response naming the missing automation.
    """
    return Response(
        content={
            "status_code": HTTP_404_NOT_FOUND,
            "detail": str(exc),
            "automation_id": str(exc.automation_id),
        },
        status_code=HTTP_404_NOT_FOUND,
        media_type="application/json",
    )
