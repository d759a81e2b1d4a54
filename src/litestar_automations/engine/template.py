"""Template rendering for outbound messages.

Placeholders look like ``{{firstName}}``: word characters and dots only, no
expressions, loops or escaping.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_automations.core.models import ContactSnapshot, ListingSnapshot, UserSnapshot

__all__ = ["build_template_variables", "render", "text_to_html"]

_PLACEHOLDER = re.compile(r"\{\{([\w.]+)\}\}")
_BLOCK_TAG = re.compile(r"<(?:p|div|br|table|ul|ol|h[1-6])\b", re.IGNORECASE)


def render(template: str | None, variables: Mapping[str, Any]) -> str:
    """Replace every placeholder in ``template`` with its value from ``variables``.

    Missing and non-string values render as an empty string.

    Args:
        template: Text containing ``{{name}}`` placeholders.
        variables: Flat mapping of placeholder names to values.

    Returns:
        The rendered text.

    Example:
        >>> render("Hi {{firstName}}", {"firstName": "Dana"})
        'Hi Dana'
        >>> render("Hi {{firstName}}", {})
        'Hi '
    """
    if not template:
        return ""

    def _substitute(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return value if isinstance(value, str) else ""

    return _PLACEHOLDER.sub(_substitute, template)


def text_to_html(text: str | None) -> str:
    """Turn a plain-text email body into HTML paragraphs.

    Each non-blank line becomes its own ``<p>`` block. Bodies that already contain
    block-level HTML are returned unchanged.

    Args:
        text: The authored email body.

    Returns:
        HTML suitable for the email adapter.
    """
    if not text:
        return ""
    if _BLOCK_TAG.search(text):
        return text
    lines = (line.strip() for line in text.replace("\r\n", "\n").split("\n"))
    return "".join(f"<p>{line}</p>" for line in lines if line)


def build_template_variables(
    user: UserSnapshot | None,
    contact: ContactSnapshot | None,
    listing: ListingSnapshot | None,
) -> dict[str, str]:
    """Build the flat variable map available to message templates."""
    return {
        "firstName": (contact.first_name if contact else None) or "",
        "agentName": (user.name if user else None) or "",
        "propertyAddress": (listing.address if listing else None) or "",
    }
