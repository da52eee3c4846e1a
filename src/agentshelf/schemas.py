"""Pydantic models for catalog entries, prompt documents, and lint reports."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Prompt documents
# ---------------------------------------------------------------------------


class DocumentSection(BaseModel):
    """A heading and the markdown that follows it, up to the next heading."""

    title: str
    level: int = 1
    content: str = ""
    line: int = 0


class PromptDocument(BaseModel):
    """One markdown file holding one persona/prompt definition."""

    topic: str
    folder: str = ""
    path: str = ""
    title: str = ""
    audience: str = ""
    persona: str = ""
    mission: str = ""
    body: str = ""
    sections: list[DocumentSection] = Field(default_factory=list)
    placeholders: list[str] = Field(default_factory=list)

    def section(self, title: str) -> DocumentSection | None:
        """Return the first section whose heading matches *title* (case-insensitive)."""
        wanted = (title or "").strip().lower()
        for section in self.sections:
            if section.title.strip().lower() == wanted:
                return section
        return None

    @property
    def report_format(self) -> DocumentSection | None:
        for section in self.sections:
            if "report format" in section.title.lower():
                return section
        return None


# ---------------------------------------------------------------------------
# Catalog indexes
# ---------------------------------------------------------------------------


class CatalogEntry(BaseModel):
    """One row of an ``agents.md`` index table."""

    name: str
    path: str
    description: str = ""
    use_when: str = ""
    folder: str = ""
    topic: str = ""
    line: int = 0

    @property
    def key(self) -> str:
        """Lookup key: ``folder/topic`` with the folder normalized like the topic."""
        from agentshelf.documents import normalize_topic

        folder = normalize_topic(self.folder)
        return f"{folder}/{self.topic}" if folder else self.topic


class FolderIndex(BaseModel):
    """Parsed index of a single topic folder."""

    folder: str
    index_path: str
    entries: list[CatalogEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Lint results
# ---------------------------------------------------------------------------


class LintSeverity(str, Enum):
    """Ranked severity, highest first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    LintSeverity.CRITICAL: 0,
    LintSeverity.HIGH: 1,
    LintSeverity.MEDIUM: 2,
    LintSeverity.LOW: 3,
}


class LintIssue(BaseModel):
    """A single structural or editorial problem found in the library."""

    check: str
    severity: LintSeverity
    path: str
    message: str
    line: int = 0

    def location(self) -> str:
        return f"{self.path}:{self.line}" if self.line else self.path


class LintReport(BaseModel):
    """All issues found while linting one or more library roots."""

    root: str
    issues: list[LintIssue] = Field(default_factory=list)
    files_checked: int = 0

    @property
    def summary(self) -> dict[str, int]:
        counts = {severity.value: 0 for severity in LintSeverity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts

    @property
    def ok(self) -> bool:
        summary = self.summary
        return summary["critical"] == 0 and summary["high"] == 0

    def sorted_issues(self) -> list[LintIssue]:
        return sorted(self.issues, key=lambda i: (i.severity.rank, i.path, i.line, i.check))

    def merge(self, other: LintReport) -> LintReport:
        """Return a new report combining this one with *other*."""
        roots = [r for r in (self.root, other.root) if r]
        return LintReport(
            root=", ".join(roots),
            issues=[*self.issues, *other.issues],
            files_checked=self.files_checked + other.files_checked,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "root": self.root,
            "files_checked": self.files_checked,
            "summary": self.summary,
            "ok": self.ok,
            "issues": [issue.model_dump(mode="json") for issue in self.sorted_issues()],
        }
