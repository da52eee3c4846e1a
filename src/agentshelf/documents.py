"""Parse prompt documents into their structural parts."""

from __future__ import annotations

import re
from pathlib import Path

from agentshelf.file_io import read_text
from agentshelf.markdown import (
    extract_audience,
    extract_persona,
    extract_placeholders,
    first_heading,
    first_paragraph,
    split_sections,
)
from agentshelf.schemas import PromptDocument

_TOPIC_SEPARATORS_RE = re.compile(r"[\s_]+")


def normalize_topic(value: str) -> str:
    """Normalize a topic, file name, or ``folder/topic`` key for lookups.

    ``" Code_Review.md "`` becomes ``"code-review"`` and
    ``"Ruby/Rails Review"`` becomes ``"ruby/rails-review"``.
    """
    raw = str(value or "").strip().replace("\\", "/")
    parts: list[str] = []
    for part in raw.split("/"):
        part = part.strip().lower()
        if part in {"", "."}:
            continue
        if part.endswith(".md"):
            part = part[:-3]
        part = _TOPIC_SEPARATORS_RE.sub("-", part).strip("-")
        if part:
            parts.append(part)
    return "/".join(parts)


def parse_document(
    text: str,
    *,
    topic: str,
    folder: str = "",
    path: str | Path = "",
) -> PromptDocument:
    """Build a :class:`PromptDocument` from markdown *text*."""
    sections = split_sections(text)
    title = first_heading(text, level=1) or (sections[0].title if sections else "")
    mission = ""
    for section in sections:
        if "mission" in section.title.lower():
            mission = first_paragraph(section.content)
            break
    return PromptDocument(
        topic=topic,
        folder=folder,
        path=str(path),
        title=title or topic.replace("-", " ").title(),
        audience=extract_audience(text),
        persona=extract_persona(text),
        mission=mission,
        body=text,
        sections=sections,
        placeholders=extract_placeholders(text),
    )


def load_document(path: Path, *, topic: str = "", folder: str = "") -> PromptDocument:
    """Read and parse the prompt document at *path*."""
    return parse_document(
        read_text(path).text,
        topic=topic or normalize_topic(path.stem),
        folder=folder or path.parent.name,
        path=path,
    )
