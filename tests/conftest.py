"""Shared pytest configuration: markers, environment isolation, and library fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

import agentshelf.catalog as catalog_module

INDEX_TEMPLATE = """# {title}

| Agent | File | Purpose | Use When |
|-------|------|---------|----------|
{rows}
"""

DOCUMENT_TEMPLATE = """# {title}

You are a {role}.

Audience: {audience}

## Mission

{mission}

## Report Format

```markdown
# {title}: [Project Name]

| Severity | Location | Finding |
|----------|----------|---------|
| [Critical/High/Medium/Low] | [path/to/file:line] | [Issue] |
```
"""


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line("markers", "integration: filesystem/subprocess integration tests")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Run fast unit tests first, integration tests last."""

    def sort_key(item: pytest.Item) -> tuple[int, str]:
        if item.get_closest_marker("integration"):
            return (1, item.nodeid)
        return (0, item.nodeid)

    items.sort(key=sort_key)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory) -> None:
    """Keep user config, env roots, and the catalog singleton out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.delenv(catalog_module.ENV_ROOTS, raising=False)
    monkeypatch.delenv(catalog_module.ENV_CONFIG, raising=False)
    monkeypatch.setattr(catalog_module, "_USER_CONFIG", home / "missing.yaml")
    monkeypatch.setattr(catalog_module, "_default_catalog", None)


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def index_row(name: str, filename: str, purpose: str, use_when: str) -> str:
    return f"| {name} | [{filename}]({filename}) | {purpose} | {use_when} |"


def document(
    title: str,
    *,
    role: str = "Principal Engineer",
    audience: str = "enterprise",
    mission: str = "Find the problems that matter.",
) -> str:
    return DOCUMENT_TEMPLATE.format(title=title, role=role, audience=audience, mission=mission)


@pytest.fixture
def library(tmp_path: Path) -> Path:
    """A small, lint-clean library with ``generic`` and ``python`` folders."""
    root = tmp_path / "library"
    write(
        root / "generic" / "agents.md",
        INDEX_TEMPLATE.format(
            title="Generic",
            rows="\n".join(
                [
                    index_row("Code Review", "code-review.md", "Ranked review", "A diff is ready"),
                    index_row("Docs", "documentation.md", "Docs audit", "Docs are stale"),
                ]
            ),
        ),
    )
    write(root / "generic" / "code-review.md", document("Code Review"))
    write(
        root / "generic" / "documentation.md",
        document("Documentation", role="Technical Writer", audience="personal projects"),
    )
    write(
        root / "python" / "agents.md",
        INDEX_TEMPLATE.format(
            title="Python",
            rows=index_row("Python Review", "code-review.md", "Pythonic review", "Python diff"),
        ),
    )
    write(root / "python" / "code-review.md", document("Python Review", role="Python Expert"))
    return root
