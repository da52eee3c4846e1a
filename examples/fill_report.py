#!/usr/bin/env python3
"""Example: print a filled-in Report Format template for one topic.

Usage:
    python examples/fill_report.py ruby/rails-review "Application Name=Storefront"
"""

from __future__ import annotations

import sys
from pathlib import Path

# Allow running from the repo root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from agentshelf import get_catalog
from agentshelf.templates import fill, parse_assignments


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: fill_report.py <topic> [KEY=VALUE ...]")
        sys.exit(1)

    catalog = get_catalog()
    doc = catalog.document(sys.argv[1])
    values = parse_assignments(sys.argv[2:])

    print(f"Topic:        {doc.folder}/{doc.topic}")
    print(f"Persona:      {doc.persona or '(none)'}")
    print(f"Audience:     {doc.audience or '(unspecified)'}")
    print(f"Placeholders: {', '.join(doc.placeholders) or '(none)'}")

    section = doc.report_format
    if section is None:
        print("\nThis document has no Report Format section.")
        sys.exit(1)
    print("\n" + fill(section.content, values))


if __name__ == "__main__":
    main()
