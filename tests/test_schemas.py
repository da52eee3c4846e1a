"""Tests for catalog and lint report models."""

from __future__ import annotations

import pytest

from agentshelf.errors import CatalogError, IndexParseError, TopicNotFoundError
from agentshelf.schemas import (
    CatalogEntry,
    DocumentSection,
    LintIssue,
    LintReport,
    LintSeverity,
    PromptDocument,
)

pytestmark = pytest.mark.unit


def _issue(severity: LintSeverity, path: str = "generic/agents.md", line: int = 0) -> LintIssue:
    return LintIssue(check="demo", severity=severity, path=path, message="m", line=line)


def test_catalog_entry_key_includes_folder() -> None:
    entry = CatalogEntry(name="Review", path="code-review.md", folder="ruby", topic="code-review")
    assert entry.key == "ruby/code-review"
    assert CatalogEntry(name="x", path="x.md", topic="x").key == "x"


def test_prompt_document_section_lookup_is_case_insensitive() -> None:
    doc = PromptDocument(
        topic="review",
        sections=[
            DocumentSection(title="Mission", level=2),
            DocumentSection(title="Report Format (Required)", level=2),
        ],
    )
    assert doc.section("MISSION") is not None
    assert doc.section("Report Format") is None
    assert doc.report_format is not None
    assert doc.report_format.title == "Report Format (Required)"


def test_lint_report_summary_and_ok() -> None:
    report = LintReport(root="lib", issues=[_issue(LintSeverity.MEDIUM), _issue(LintSeverity.LOW)])
    assert report.summary == {"critical": 0, "high": 0, "medium": 1, "low": 1}
    assert report.ok is True

    report.issues.append(_issue(LintSeverity.HIGH))
    assert report.ok is False


def test_lint_report_sorts_by_severity_then_location() -> None:
    report = LintReport(
        root="lib",
        issues=[
            _issue(LintSeverity.LOW, "a.md"),
            _issue(LintSeverity.CRITICAL, "z.md", 9),
            _issue(LintSeverity.CRITICAL, "z.md", 3),
        ],
    )
    assert [(i.severity, i.line) for i in report.sorted_issues()] == [
        (LintSeverity.CRITICAL, 3),
        (LintSeverity.CRITICAL, 9),
        (LintSeverity.LOW, 0),
    ]
    assert report.sorted_issues()[0].location() == "z.md:3"
    assert report.sorted_issues()[2].location() == "a.md"


def test_lint_report_merge_and_to_dict() -> None:
    first = LintReport(root="one", issues=[_issue(LintSeverity.HIGH)], files_checked=2)
    merged = LintReport(root="").merge(first).merge(LintReport(root="two", files_checked=3))
    assert merged.root == "one, two"
    assert merged.files_checked == 5

    payload = merged.to_dict()
    assert payload["ok"] is False
    assert payload["summary"]["high"] == 1
    assert payload["issues"][0]["severity"] == "high"


def test_error_hierarchy_and_messages() -> None:
    exc = TopicNotFoundError("nope", ["b/x", "a/y"])
    assert isinstance(exc, CatalogError)
    assert isinstance(exc, KeyError)
    assert exc.available == ["a/y", "b/x"]
    assert str(exc) == "Unknown topic 'nope'. Available: a/y, b/x"
    assert str(TopicNotFoundError("nope")) == "Unknown topic 'nope'. Available: (none)"
    assert issubclass(IndexParseError, CatalogError)
