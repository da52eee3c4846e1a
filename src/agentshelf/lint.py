"""Structural and editorial checks over a prompt library.

Checks (id, default severity):

* ``broken-link`` (critical): an index entry whose file does not exist.
* ``missing-index`` (high): a topic folder with documents but no usable index.
* ``unbalanced-fence`` (high): a code fence that is never closed.
* ``duplicate-entry`` (medium): the same topic listed twice in one index.
* ``malformed-table`` (medium): a broken table in an index or a Report Format section.
* ``missing-folder-reference`` (medium): prose pointing at a folder that does not exist.
* ``encoding`` (medium): mojibake or non-UTF-8 bytes (low once fixed in place).
* ``unindexed-document`` (low): a document no index entry points to.
* ``missing-persona`` (low): a prompt document without a "You are ..." persona.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from agentshelf.catalog import DEFAULT_INDEX_NAMES, find_index_file, parse_index
from agentshelf.encoding_hygiene import describe_signature, normalize_text, scan_text
from agentshelf.errors import IndexParseError
from agentshelf.file_io import atomic_write_text, read_text
from agentshelf.markdown import (
    extract_persona,
    fence_problems,
    fenced_blocks,
    find_tables,
    folder_references,
    split_sections,
    table_problems,
)
from agentshelf.schemas import LintIssue, LintReport, LintSeverity

if TYPE_CHECKING:
    from agentshelf.catalog import PromptCatalog

logger = logging.getLogger(__name__)

_MARKDOWN_FENCE_INFOS = {"", "markdown", "md"}
_NON_PROMPT_FILES = {"readme.md"}


class _Collector:
    """Accumulates issues for one library root."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.issues: list[LintIssue] = []
        self.files_checked = 0

    def add(
        self,
        check: str,
        severity: LintSeverity,
        path: Path,
        message: str,
        line: int = 0,
    ) -> None:
        try:
            shown = path.relative_to(self.root).as_posix()
        except ValueError:
            shown = path.as_posix()
        self.issues.append(
            LintIssue(check=check, severity=severity, path=shown or ".", message=message, line=line)
        )


def _prompt_files(folder: Path) -> list[Path]:
    return sorted(
        (p for p in folder.glob("*.md") if p.name.lower() not in _NON_PROMPT_FILES),
        key=lambda p: p.name.lower(),
    )


def _topic_folders(root: Path, index_names: tuple[str, ...]) -> list[Path]:
    folders = [
        child
        for child in sorted(root.iterdir(), key=lambda p: p.name.lower())
        if child.is_dir()
        and not child.name.startswith((".", "_"))
        and (find_index_file(child, index_names) is not None or bool(_prompt_files(child)))
    ]
    if not folders and find_index_file(root, index_names) is not None:
        return [root]
    return folders


def _read(path: Path, out: _Collector, *, fix_encoding: bool) -> str:
    result = read_text(path)
    text = result.text
    counts = scan_text(text)
    if not counts and not result.used_fallback:
        return text

    problems = [f"{describe_signature(sig)} x{count}" for sig, count in counts.items()]
    if result.used_fallback:
        problems.insert(0, f"not valid UTF-8 (decoded as {result.decoder})")
    detail = "; ".join(problems)

    if fix_encoding:
        normalized, _ = normalize_text(text)
        atomic_write_text(path, normalized)
        out.add("encoding", LintSeverity.LOW, path, f"normalized in place: {detail}")
        logger.info("Normalized encoding of %s", path)
        return normalized
    out.add("encoding", LintSeverity.MEDIUM, path, detail)
    return text


def _check_fences(text: str, path: Path, out: _Collector) -> None:
    for line in fence_problems(text):
        out.add("unbalanced-fence", LintSeverity.HIGH, path, "code fence is never closed", line)


def _check_folder_references(
    text: str, path: Path, known_folders: set[str], out: _Collector
) -> None:
    for line, folder in folder_references(text):
        if folder not in known_folders:
            out.add(
                "missing-folder-reference",
                LintSeverity.MEDIUM,
                path,
                f"references folder '{folder}' which does not exist in this library",
                line,
            )


def _report_format_span(text: str) -> tuple[int, int] | None:
    """Return the ``[start, end)`` line span of the Report Format section."""
    sections = split_sections(text)
    for idx, section in enumerate(sections):
        if "report format" not in section.title.lower():
            continue
        end = len(text.splitlines()) + 1
        for later in sections[idx + 1 :]:
            if later.level <= section.level:
                end = later.line
                break
        return section.line, end
    return None


def _check_report_format(text: str, path: Path, out: _Collector) -> None:
    span = _report_format_span(text)
    if span is None:
        return
    start, end = span
    problems: list[tuple[int, str]] = [
        (line, message)
        for table in find_tables(text)
        if start <= table.line < end
        for line, message in table.problems()
    ]
    for block in fenced_blocks(text):
        if not (start <= block.line < end) or block.info not in _MARKDOWN_FENCE_INFOS:
            continue
        for line, message in table_problems(block.content):
            problems.append((block.line + line - 1, message))
    for line, message in sorted(problems):
        out.add("malformed-table", LintSeverity.MEDIUM, path, f"Report Format: {message}", line)


def _lint_document(
    path: Path,
    out: _Collector,
    *,
    known_folders: set[str],
    fix_encoding: bool = False,
) -> None:
    text = _read(path, out, fix_encoding=fix_encoding)
    out.files_checked += 1
    _check_fences(text, path, out)
    _check_report_format(text, path, out)
    _check_folder_references(text, path, known_folders, out)
    if not extract_persona(text):
        out.add("missing-persona", LintSeverity.LOW, path, "no 'You are ...' persona sentence")


def _lint_index(
    folder: Path,
    index_file: Path,
    out: _Collector,
    *,
    known_folders: set[str],
    fix_encoding: bool,
) -> set[str]:
    """Check an index file; return the document file names it references."""
    text = _read(index_file, out, fix_encoding=fix_encoding)
    out.files_checked += 1
    _check_fences(text, index_file, out)
    _check_folder_references(text, index_file, known_folders, out)
    for line, message in table_problems(text):
        out.add("malformed-table", LintSeverity.MEDIUM, index_file, message, line)

    try:
        index = parse_index(index_file, folder=folder.name)
    except IndexParseError:
        out.add(
            "missing-index",
            LintSeverity.HIGH,
            index_file,
            "index has no table with a document/file column",
        )
        return set()

    referenced: set[str] = set()
    seen: dict[str, int] = {}
    for entry in index.entries:
        target = folder / entry.path
        if target.parent.resolve() != folder.resolve():
            out.add(
                "broken-link",
                LintSeverity.CRITICAL,
                index_file,
                f"entry '{entry.name}' links to '{entry.path}' outside its folder",
                entry.line,
            )
        elif target.is_file():
            referenced.add(target.resolve().as_posix())
        else:
            out.add(
                "broken-link",
                LintSeverity.CRITICAL,
                index_file,
                f"entry '{entry.name}' links to missing file '{entry.path}'",
                entry.line,
            )
        if entry.topic in seen:
            out.add(
                "duplicate-entry",
                LintSeverity.MEDIUM,
                index_file,
                f"topic '{entry.topic}' is already listed on line {seen[entry.topic]}",
                entry.line,
            )
        else:
            seen[entry.topic] = entry.line
    return referenced


def lint_library(
    root: str | Path,
    *,
    index_names: Iterable[str] = DEFAULT_INDEX_NAMES,
    fix_encoding: bool = False,
) -> LintReport:
    """Lint every topic folder under *root*.

    Raises ``FileNotFoundError`` when *root* is not a directory; problems in
    the documents themselves are always reported as issues.
    """
    root_path = Path(root).expanduser().resolve()
    if not root_path.is_dir():
        raise FileNotFoundError(f"Library root does not exist: {root_path}")
    names = tuple(index_names)
    out = _Collector(root_path)
    folders = _topic_folders(root_path, names)
    known_folders = {folder.name.lower() for folder in folders}
    if folders == [root_path]:
        known_folders |= {
            child.name.lower() for child in root_path.parent.iterdir() if child.is_dir()
        }

    for folder in folders:
        index_file = find_index_file(folder, names)
        documents = _prompt_files(folder)
        referenced: set[str] = set()
        if index_file is None:
            out.add(
                "missing-index",
                LintSeverity.HIGH,
                folder,
                f"folder has {len(documents)} document(s) but no {names[0]}",
            )
        else:
            referenced = _lint_index(
                folder,
                index_file,
                out,
                known_folders=known_folders,
                fix_encoding=fix_encoding,
            )

        for path in documents:
            if index_file is not None and path.name == index_file.name:
                continue
            if index_file is not None and path.resolve().as_posix() not in referenced:
                out.add(
                    "unindexed-document",
                    LintSeverity.LOW,
                    path,
                    f"not listed in {index_file.name}",
                )
            _lint_document(path, out, known_folders=known_folders, fix_encoding=fix_encoding)

    logger.debug("Linted %s: %d file(s), %d issue(s)", root_path, out.files_checked, len(out.issues))
    return LintReport(root=str(root_path), issues=out.issues, files_checked=out.files_checked)


def lint_catalog(catalog: PromptCatalog, *, fix_encoding: bool = False) -> LintReport:
    """Lint every root of *catalog* and merge the reports."""
    index_names = tuple(catalog.config.get("index_names") or DEFAULT_INDEX_NAMES)
    report = LintReport(root="")
    for root in catalog.roots:
        report = report.merge(
            lint_library(root, index_names=index_names, fix_encoding=fix_encoding)
        )
    return report
