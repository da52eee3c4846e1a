"""Markdown helpers for prompt documents and catalog index tables.

Everything here works on strings; reading files is the caller's job.
Fenced code blocks are tracked so that headings, tables, and prose
references inside example snippets are never mistaken for structure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from agentshelf.schemas import DocumentSection

_HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})(.*)$")
_DELIMITER_CELL_RE = re.compile(r"^:?-+:?$")
_UNESCAPED_PIPE_RE = re.compile(r"(?<!\\)\|")
_INLINE_CODE_RE = re.compile(r"(`+[^`]*`+)")
_LINK_DEFINITION_RE = re.compile(r"^\s{0,3}\[[^\]]+\]:\s")

_LINK_RE = re.compile(r"\[([^\]]*)\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_CODE_TARGET_RE = re.compile(r"`([^`]+\.md)`")
_BARE_TARGET_RE = re.compile(r"(?<![\w/.-])([\w./-]+\.md)\b")

_PLACEHOLDER_RE = re.compile(r"(?<![\w\])!\\])\[([A-Za-z][^\[\]\n]*?)\](?![(\[])")
_PERSONA_RE = re.compile(r"(?:^|(?<=[.!?:]\s))you\s+are\b[^.!?\n]*[.!?]?", re.IGNORECASE)
_EMPHASIS_RE = re.compile(r"(\*{1,3}|(?<!\w)_{1,3}|_{1,3}(?!\w))")
_AUDIENCE_RE = re.compile(
    r"^\s*[*_>-]*\s*[*_]*(?:target\s+)?audience[*_]*\s*[:\-]\s*[*_]*\s*(.+?)\s*[*_]*\s*$",
    re.IGNORECASE | re.MULTILINE,
)

_URL_RE = re.compile(r"\b[A-Za-z][\w+.-]*://\S+|\bwww\.\S+")
_FOLDER_PATH_RE = re.compile(r"(?<![\w./:@-])(?:\.{1,2}/)?([A-Za-z][\w-]*)/agents\.md\b")
_FOLDER_PROSE_RE = re.compile(
    r"\bthe\s+`?([A-Za-z][\w-]*)`?"
    r"((?:\s*,\s*`?[A-Za-z][\w-]*`?)*(?:,?\s+(?:or|and)\s+`?[A-Za-z][\w-]*`?)?)"
    r"\s+(?:folders?|director(?:y|ies))\b",
    re.IGNORECASE,
)
_FOLDER_LIST_SPLIT_RE = re.compile(r"\s*(?:,|\bor\b|\band\b)\s*", re.IGNORECASE)
_REFERENCE_CUE_RE = re.compile(r"\b(?:see|refer\s+to|consult)\b", re.IGNORECASE)
_NON_FOLDER_WORDS = {
    "current",
    "each",
    "following",
    "other",
    "parent",
    "project",
    "prompt",
    "prompts",
    "root",
    "same",
    "sibling",
    "that",
    "this",
    "topic",
    "your",
}


# ---------------------------------------------------------------------------
# Fences and sections
# ---------------------------------------------------------------------------


def _closes_fence(match: re.Match[str] | None, fence: str) -> bool:
    # Same character, at least as long, and no info string.
    return bool(
        match
        and match.group(1)[0] == fence[0]
        and len(match.group(1)) >= len(fence)
        and not match.group(2).strip()
    )


def _scan_fences(lines: list[str]) -> tuple[list[bool], list[int]]:
    """Return a per-line "inside a fence" mask and the lines of unclosed fences."""
    inside: list[bool] = []
    fence = ""
    open_line = 0
    for idx, line in enumerate(lines, start=1):
        match = _FENCE_RE.match(line)
        if not fence:
            if match:
                fence = match.group(1)
                open_line = idx
            inside.append(bool(match))
            continue
        inside.append(True)
        if _closes_fence(match, fence):
            fence = ""
    return inside, ([open_line] if fence else [])


def fence_problems(text: str) -> list[int]:
    """Return the line numbers of code fences that are never closed."""
    _, unclosed = _scan_fences(text.splitlines())
    return unclosed


@dataclass(frozen=True)
class FencedBlock:
    """A closed fenced code block; ``line`` is the first content line."""

    line: int
    info: str
    content: str


def fenced_blocks(text: str) -> list[FencedBlock]:
    """Return every closed fenced code block in *text*."""
    blocks: list[FencedBlock] = []
    fence = ""
    info = ""
    start = 0
    body: list[str] = []
    for idx, line in enumerate(text.splitlines(), start=1):
        match = _FENCE_RE.match(line)
        if not fence:
            if match:
                fence, info, start, body = match.group(1), match.group(2).strip(), idx + 1, []
            continue
        if _closes_fence(match, fence):
            blocks.append(FencedBlock(line=start, info=info.lower(), content="\n".join(body)))
            fence = ""
            continue
        body.append(line)
    return blocks


def split_sections(text: str) -> list[DocumentSection]:
    """Split *text* into heading sections, ignoring headings inside code fences."""
    lines = text.splitlines()
    inside, _ = _scan_fences(lines)
    sections: list[DocumentSection] = []
    heading: tuple[str, int, int] | None = None
    buffer: list[str] = []

    def flush() -> None:
        if heading is None:
            return
        title, level, line_no = heading
        sections.append(
            DocumentSection(
                title=title,
                level=level,
                line=line_no,
                content="\n".join(buffer).strip("\n"),
            )
        )

    for idx, line in enumerate(lines, start=1):
        match = None if inside[idx - 1] else _HEADING_RE.match(line)
        if match:
            flush()
            heading = (match.group(2).strip(), len(match.group(1)), idx)
            buffer = []
        elif heading is not None:
            buffer.append(line)
    flush()
    return sections


def first_heading(text: str, level: int = 1) -> str:
    """Return the first heading at *level*, or ``""``."""
    for section in split_sections(text):
        if section.level == level:
            return section.title
    return ""


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def split_row(line: str) -> list[str]:
    """Split a table row into stripped cells, honoring ``\\|`` escapes."""
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|") and not row.endswith("\\|"):
        row = row[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _UNESCAPED_PIPE_RE.split(row)]


def is_delimiter_row(line: str) -> bool:
    if "-" not in line:
        return False
    cells = split_row(line)
    return bool(cells) and all(_DELIMITER_CELL_RE.match(cell) for cell in cells)


@dataclass
class MarkdownTable:
    """A table block as it appears in the source text."""

    line: int
    lines: list[str] = field(default_factory=list)

    @property
    def header(self) -> list[str]:
        return split_row(self.lines[0]) if self.lines else []

    @property
    def has_delimiter(self) -> bool:
        return len(self.lines) >= 2 and is_delimiter_row(self.lines[1])

    @property
    def body(self) -> list[list[str]]:
        start = 2 if self.has_delimiter else 1
        return [split_row(line) for line in self.lines[start:]]

    def records(self) -> list[dict[str, str]]:
        """Return body rows keyed by lower-cased header names."""
        if not self.has_delimiter:
            return []
        names = [name.lower() for name in self.header]
        records: list[dict[str, str]] = []
        for cells in self.body:
            padded = cells + [""] * (len(names) - len(cells))
            records.append(dict(zip(names, padded)))
        return records

    def problems(self) -> list[tuple[int, str]]:
        """Return ``(line, message)`` pairs for malformed structure."""
        if not self.has_delimiter:
            return [(self.line, "table has no valid delimiter row under its header")]
        width = len(self.header)
        issues: list[tuple[int, str]] = []
        delimiter_width = len(split_row(self.lines[1]))
        if delimiter_width != width:
            issues.append(
                (self.line + 1, f"delimiter row has {delimiter_width} cells, header has {width}")
            )
        for offset, cells in enumerate(self.body, start=2):
            if len(cells) != width:
                issues.append(
                    (self.line + offset, f"row has {len(cells)} cells, header has {width}")
                )
        return issues


def find_tables(text: str) -> list[MarkdownTable]:
    """Locate every table block outside code fences."""
    lines = text.splitlines()
    inside, _ = _scan_fences(lines)
    tables: list[MarkdownTable] = []
    idx = 0
    while idx < len(lines):
        line = lines[idx]
        stripped = line.strip()
        if inside[idx] or "|" not in stripped:
            idx += 1
            continue
        leading_pipe = stripped.startswith("|")
        next_is_delimiter = idx + 1 < len(lines) and is_delimiter_row(lines[idx + 1])
        if not leading_pipe and not next_is_delimiter:
            idx += 1
            continue
        table = MarkdownTable(line=idx + 1, lines=[line])
        idx += 1
        while idx < len(lines) and not inside[idx]:
            candidate = lines[idx].strip()
            if not candidate or "|" not in candidate:
                break
            if leading_pipe and not candidate.startswith("|"):
                break
            table.lines.append(lines[idx])
            idx += 1
        tables.append(table)
    return tables


def parse_table(lines: list[str]) -> list[dict[str, str]]:
    """Parse table lines (header, delimiter, rows) into lower-cased records."""
    return MarkdownTable(line=1, lines=list(lines)).records()


def table_problems(text: str) -> list[tuple[int, str]]:
    problems: list[tuple[int, str]] = []
    for table in find_tables(text):
        problems.extend(table.problems())
    return problems


def extract_link(cell: str) -> tuple[str, str] | None:
    """Return ``(label, target)`` for the markdown file referenced by a table cell."""
    match = _LINK_RE.search(cell)
    if match:
        target = match.group(2).split("#", 1)[0]
        if target:
            return match.group(1).strip().strip("`"), target
    match = _CODE_TARGET_RE.search(cell)
    if match:
        return match.group(1), match.group(1)
    match = _BARE_TARGET_RE.search(cell)
    if match:
        return match.group(1), match.group(1)
    return None


# ---------------------------------------------------------------------------
# Prose extraction
# ---------------------------------------------------------------------------


def _prose_lines(text: str) -> list[tuple[int, str]]:
    lines = text.splitlines()
    inside, _ = _scan_fences(lines)
    return [(idx, line) for idx, line in enumerate(lines, start=1) if not inside[idx - 1]]


def strip_emphasis(text: str) -> str:
    return _EMPHASIS_RE.sub("", text).strip()


def extract_persona(text: str) -> str:
    """Return the first "You are ..." sentence outside code fences, or ``""``."""
    for _, line in _prose_lines(text):
        plain = strip_emphasis(line.strip().lstrip(">-+ ").strip())
        match = _PERSONA_RE.search(plain)
        if match:
            return match.group(0).strip()
    return ""


def extract_audience(text: str) -> str:
    """Return the declared target audience of a document.

    An explicit ``Audience:`` line wins; otherwise the two audiences the
    library distinguishes are recognized from the prose.
    """
    match = _AUDIENCE_RE.search(text)
    if match:
        return strip_emphasis(match.group(1))
    lowered = text.lower()
    if "enterprise" in lowered:
        return "enterprise"
    if "personal project" in lowered:
        return "personal projects"
    return ""


def first_paragraph(text: str) -> str:
    paragraph: list[str] = []
    for _, line in _prose_lines(text):
        if not line.strip():
            if paragraph:
                break
            continue
        paragraph.append(line.strip())
    return " ".join(paragraph)


def _outside_inline_code(line: str) -> list[tuple[bool, str]]:
    """Split *line* into ``(is_code, chunk)`` pieces around inline code spans."""
    return [
        (idx % 2 == 1, chunk)
        for idx, chunk in enumerate(_INLINE_CODE_RE.split(line))
        if chunk
    ]


def _is_checkbox(token: str) -> bool:
    return token.strip().lower() in {"", "x"}


def extract_placeholders(text: str) -> list[str]:
    """Return ``[Placeholder]`` names in order of first appearance."""
    seen: set[str] = set()
    names: list[str] = []
    for line in text.splitlines():
        if _LINK_DEFINITION_RE.match(line):
            continue
        for is_code, chunk in _outside_inline_code(line):
            if is_code:
                continue
            for match in _PLACEHOLDER_RE.finditer(chunk):
                name = match.group(1).strip()
                if _is_checkbox(name) or name.lower() in seen:
                    continue
                seen.add(name.lower())
                names.append(name)
    return names


def substitute_placeholders(text: str, values: dict[str, str]) -> tuple[str, list[str]]:
    """Replace known placeholders; return the new text and the names left unfilled."""
    lookup = {key.strip().lower(): value for key, value in values.items()}
    missing: list[str] = []

    def replace(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if _is_checkbox(name):
            return match.group(0)
        value = lookup.get(name.lower())
        if value is None:
            if name not in missing:
                missing.append(name)
            return match.group(0)
        return value

    out_lines: list[str] = []
    for line in text.split("\n"):
        if _LINK_DEFINITION_RE.match(line):
            out_lines.append(line)
            continue
        pieces = [
            chunk if is_code else _PLACEHOLDER_RE.sub(replace, chunk)
            for is_code, chunk in _outside_inline_code(line)
        ]
        out_lines.append("".join(pieces))
    return "\n".join(out_lines), missing


def folder_references(text: str) -> list[tuple[int, str]]:
    """Return ``(line, folder)`` pairs for prose references to topic folders.

    Recognizes relative path references (``ruby/agents.md``) and sentences
    such as "see the python or html folders". URLs are ignored.
    """
    refs: list[tuple[int, str]] = []
    for line_no, line in _prose_lines(text):
        line = _URL_RE.sub(lambda m: " " * len(m.group(0)), line)
        found: list[str] = []
        for match in _FOLDER_PATH_RE.finditer(line):
            found.append(match.group(1))
        mentions_index = "agents.md" in line.lower()
        for match in _FOLDER_PROSE_RE.finditer(line):
            if not mentions_index and not _REFERENCE_CUE_RE.search(line[: match.start()]):
                continue
            names = [match.group(1)]
            names.extend(_FOLDER_LIST_SPLIT_RE.split(match.group(2) or ""))
            found.extend(name.strip().strip("`") for name in names)
        for name in found:
            folder = name.lower()
            if not folder or folder in _NON_FOLDER_WORDS:
                continue
            if (line_no, folder) not in refs:
                refs.append((line_no, folder))
    return refs
