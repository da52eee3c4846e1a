"""CLI entrypoint for agentshelf."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from agentshelf.catalog import PromptCatalog
from agentshelf.errors import CatalogError
from agentshelf.schemas import LintReport


def _load_dotenv() -> None:
    """Load .env from cwd or its parent so AGENTSHELF_* settings are picked up."""
    try:
        from dotenv import load_dotenv
    except ImportError:
        return
    for dir_ in (Path.cwd(), Path.cwd().parent):
        env_file = dir_ / ".env"
        if env_file.is_file():
            load_dotenv(env_file)
            return
    load_dotenv()


_load_dotenv()


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the command-line parser."""
    p = argparse.ArgumentParser(
        prog="agentshelf",
        description="agentshelf - browse, look up, fill, and lint markdown prompt libraries.",
    )
    p.add_argument(
        "--root",
        action="append",
        default=[],
        metavar="PATH",
        help="Extra library root searched before the configured ones (repeatable).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $AGENTSHELF_CONFIG or ~/.agentshelf/config.yaml).",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )
    # -- Sub-commands ---------------------------------------------------------
    sub = p.add_subparsers(dest="command")

    list_p = sub.add_parser("list", help="List catalog entries grouped by folder.")
    list_p.add_argument("--folder", type=str, default=None, help="Only list one folder.")
    list_p.add_argument("--json", action="store_true", help="Emit JSON instead of text.")

    folders_p = sub.add_parser("folders", help="List topic folders.")
    folders_p.add_argument("--json", action="store_true", help="Emit JSON instead of text.")

    lookup_p = sub.add_parser("lookup", help="Print the document path registered for a topic.")
    lookup_p.add_argument("topic", help="Topic, folder/topic, file name, or alias.")

    show_p = sub.add_parser("show", help="Print a prompt document.")
    show_p.add_argument("topic", help="Topic, folder/topic, file name, or alias.")
    show_p.add_argument(
        "--section",
        type=str,
        default=None,
        help="Only print the section with this heading (e.g. 'Report Format').",
    )
    show_p.add_argument(
        "--fill",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Replace the [KEY] placeholder with VALUE (repeatable).",
    )
    show_p.add_argument(
        "--strict",
        action="store_true",
        help="Fail when placeholders remain unfilled.",
    )

    ph_p = sub.add_parser("placeholders", help="List the [placeholders] of a document.")
    ph_p.add_argument("topic", help="Topic, folder/topic, file name, or alias.")
    ph_p.add_argument("--json", action="store_true", help="Emit JSON instead of text.")

    lint_p = sub.add_parser("lint", help="Check a library for broken links and malformed markdown.")
    lint_p.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Library root to lint (default: every catalog root).",
    )
    lint_p.add_argument("--json", action="store_true", help="Emit a JSON report.")
    lint_p.add_argument(
        "--fix-encoding",
        action="store_true",
        help="Rewrite files with mojibake or non-UTF-8 bytes as clean UTF-8.",
    )

    export_p = sub.add_parser("export", help="Write the catalog snapshot as JSON.")
    export_p.add_argument("output", help="Destination JSON file.")
    return p


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to the requested command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    # -- Logging setup -------------------------------------------------------
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    handlers = {
        "list": _list_entries,
        "folders": _list_folders,
        "lookup": _lookup,
        "show": _show,
        "placeholders": _placeholders,
        "lint": _lint,
        "export": _export,
    }
    handler = handlers.get(args.command or "")
    if handler is None:
        parser.print_help()
        print(
            "\nTip: run 'agentshelf list' to browse the catalog,\n"
            "     'agentshelf show <topic>' to print a prompt,\n"
            "     or 'agentshelf lint [path]' to check a library.",
            file=sys.stderr,
        )
        return 1

    try:
        return handler(args)
    except (CatalogError, FileNotFoundError, ValueError) as exc:
        print(f"\nError: {exc}", file=sys.stderr)
        return 1


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config).expanduser() if getattr(args, "config", None) else None


def _build_catalog(args: argparse.Namespace) -> PromptCatalog:
    return PromptCatalog(roots=getattr(args, "root", None) or [], config_path=_config_path(args))


# -- Catalog browsing ---------------------------------------------------------


def _list_entries(args: argparse.Namespace) -> int:
    """List catalog entries grouped by folder."""
    catalog = _build_catalog(args)
    entries = catalog.entries(args.folder)
    if args.json:
        print(json.dumps([entry.model_dump() | {"key": entry.key} for entry in entries], indent=2))
        return 0
    if not entries:
        where = f" in folder '{args.folder}'" if args.folder else ""
        print(f"\nNo catalog entries{where}.", file=sys.stderr)
        return 1

    print(f"\n  Prompt Catalog - {len(entries)} documents")
    print("  " + "=" * 58)
    current = None
    for entry in entries:
        if entry.folder != current:
            current = entry.folder
            print(f"\n  {current}/")
        print(f"    [{entry.key}] {entry.name}")
        if entry.description:
            print(f"      {entry.description}")
        if entry.use_when:
            print(f"      Use when: {entry.use_when}")
    print()
    return 0


def _list_folders(args: argparse.Namespace) -> int:
    catalog = _build_catalog(args)
    counts = {folder: len(catalog.entries(folder)) for folder in catalog.folders()}
    if args.json:
        print(json.dumps(counts, indent=2))
        return 0
    for folder, count in counts.items():
        print(f"{folder}\t{count}")
    return 0


def _lookup(args: argparse.Namespace) -> int:
    print(_build_catalog(args).lookup(args.topic))
    return 0


# -- Documents ----------------------------------------------------------------


def _show(args: argparse.Namespace) -> int:
    """Print a document or one of its sections, optionally filled in."""
    from agentshelf.templates import fill, parse_assignments

    document = _build_catalog(args).document(args.topic)
    text = document.body
    if args.section:
        section = document.section(args.section)
        if section is None:
            titles = ", ".join(s.title for s in document.sections) or "(none)"
            print(
                f"\nError: '{document.topic}' has no section '{args.section}'.\n"
                f"Sections: {titles}",
                file=sys.stderr,
            )
            return 1
        text = section.content

    values = parse_assignments(args.fill)
    if values or args.strict:
        text = fill(text, values, strict=args.strict)
    sys.stdout.write(text if text.endswith("\n") else text + "\n")
    return 0


def _placeholders(args: argparse.Namespace) -> int:
    document = _build_catalog(args).document(args.topic)
    if args.json:
        print(json.dumps(document.placeholders, indent=2))
        return 0
    for name in document.placeholders:
        print(name)
    return 0


# -- Lint ---------------------------------------------------------------------


def _print_lint_report(report: LintReport) -> None:
    """Print a human-readable lint report."""
    print("\n  agentshelf - Library Lint")
    print("  " + "=" * 58)
    print(f"  Root(s): {report.root or '(none)'}")
    print(f"  Files:   {report.files_checked}")

    for issue in report.sorted_issues():
        print(f"\n  [{issue.severity.value.upper()}] {issue.check}")
        print(f"    {issue.location()}")
        print(f"    {issue.message}")

    summary = report.summary
    print("\n  " + "-" * 58)
    print(
        f"  Summary: {summary['critical']} critical, {summary['high']} high, "
        f"{summary['medium']} medium, {summary['low']} low"
    )
    print(f"  OK:      {'yes' if report.ok else 'no'}")
    print()


def _lint(args: argparse.Namespace) -> int:
    """Lint one library root, or every root of the catalog."""
    from agentshelf.catalog import DEFAULT_INDEX_NAMES, load_config
    from agentshelf.lint import lint_catalog, lint_library

    if args.path:
        config = load_config(_config_path(args))
        report = lint_library(
            args.path,
            index_names=tuple(config.get("index_names") or DEFAULT_INDEX_NAMES),
            fix_encoding=args.fix_encoding,
        )
    else:
        report = lint_catalog(_build_catalog(args), fix_encoding=args.fix_encoding)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        _print_lint_report(report)
    return 0 if report.ok else 1


def _export(args: argparse.Namespace) -> int:
    target = _build_catalog(args).export(Path(args.output).expanduser())
    print(f"Wrote {target}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
