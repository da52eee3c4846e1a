"""Placeholder listing and literal filling for report-format templates.

Placeholders are the bracketed tokens a template author leaves for the
reader, e.g. ``[Project Name]`` or ``[Critical/High/Medium/Low]``.
Filling is plain substitution: there are no expressions or control flow.
"""

from __future__ import annotations

import logging

from agentshelf.errors import MissingPlaceholderError
from agentshelf.markdown import extract_placeholders, substitute_placeholders
from agentshelf.schemas import PromptDocument

logger = logging.getLogger(__name__)


def _text_of(source: PromptDocument | str) -> str:
    return source.body if isinstance(source, PromptDocument) else source


def placeholders(source: PromptDocument | str) -> list[str]:
    """Return the placeholder names in *source* in order of first appearance."""
    return extract_placeholders(_text_of(source))


def fill(
    source: PromptDocument | str,
    values: dict[str, str],
    *,
    strict: bool = False,
) -> str:
    """Replace ``[Name]`` tokens with ``values[Name]`` (names match case-insensitively).

    With ``strict=True`` any placeholder left unfilled raises
    :class:`MissingPlaceholderError`; otherwise it stays in the output as-is.
    """
    filled, missing = substitute_placeholders(_text_of(source), values)
    if missing:
        if strict:
            raise MissingPlaceholderError(missing)
        logger.debug("Left %d placeholder(s) unfilled: %s", len(missing), ", ".join(missing))
    return filled


def parse_assignments(items: list[str] | None) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings from the command line."""
    values: dict[str, str] = {}
    for item in items or []:
        key, sep, value = str(item).partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {item!r}")
        values[key] = value
    return values
