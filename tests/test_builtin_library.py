"""Checks over the prompt library shipped inside the package."""

from __future__ import annotations

import pytest

from agentshelf.catalog import BUILTIN_LIBRARY, PromptCatalog
from agentshelf.lint import lint_library
from agentshelf.templates import fill

pytestmark = pytest.mark.integration


def test_builtin_library_lints_clean() -> None:
    report = lint_library(BUILTIN_LIBRARY)
    assert [issue.location() + " " + issue.message for issue in report.issues] == []
    assert report.files_checked == 9


def test_builtin_catalog_resolves_known_topics() -> None:
    catalog = PromptCatalog()
    assert catalog.roots == [BUILTIN_LIBRARY]
    assert catalog.folders() == ["generic", "ruby"]
    assert catalog.lookup("code-review") == BUILTIN_LIBRARY / "generic" / "code-review.md"
    assert catalog.lookup("ruby/code-review") == BUILTIN_LIBRARY / "ruby" / "code-review.md"
    assert catalog.lookup("RuboCop Compliance").name == "rubocop-compliance.md"
    assert catalog.entry("rails-review").use_when == "Reviewing controllers, models, or migrations"


@pytest.mark.parametrize(
    "topic",
    [
        "generic/code-review",
        "generic/documentation",
        "generic/refactoring",
        "generic/project-setup",
        "ruby/code-review",
        "ruby/rails-review",
        "ruby/rubocop-compliance",
    ],
)
def test_every_builtin_document_is_a_complete_prompt(topic: str) -> None:
    doc = PromptCatalog().document(topic)
    assert doc.persona.startswith("You are a")
    assert doc.audience
    assert doc.mission
    assert doc.report_format is not None
    assert "[Critical/High/Medium/Low]" in doc.report_format.content or topic in {
        "generic/project-setup",
        "generic/refactoring",
    }


def test_builtin_audiences_cover_personal_and_enterprise() -> None:
    catalog = PromptCatalog()
    audiences = {catalog.document(entry.key).audience for entry in catalog.entries()}
    assert any("enterprise" in audience for audience in audiences)
    assert any("personal projects" in audience for audience in audiences)


def test_builtin_report_format_fills_cleanly() -> None:
    doc = PromptCatalog().document("ruby/rails-review")
    assert doc.placeholders[0] == "Application Name"
    text = fill(doc.report_format.content, {"Application Name": "Storefront"})
    assert "# Rails Review: Storefront" in text
