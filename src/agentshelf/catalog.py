"""Prompt catalog: topic -> document lookups over one or more library roots.

A library root holds topic folders (``generic/``, ``ruby/``, ...). Each
folder carries an ``agents.md`` index whose markdown table lists the
sibling prompt documents with a one-line purpose and a "use when" trigger.

Roots are searched in order: roots passed by the caller, then
``AGENTSHELF_ROOTS``, then ``roots`` from the YAML config, and finally the
built-in library shipped next to this module. The first root to register
a ``folder/topic`` key wins.

Usage::

    catalog = PromptCatalog()
    path = catalog.lookup("ruby/rubocop-compliance")
    doc = catalog.document("code review")
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from agentshelf.documents import load_document, normalize_topic
from agentshelf.errors import IndexParseError, TopicNotFoundError
from agentshelf.file_io import atomic_write_text, read_text
from agentshelf.markdown import extract_link, find_tables, strip_emphasis
from agentshelf.schemas import CatalogEntry, FolderIndex, PromptDocument

logger = logging.getLogger(__name__)

BUILTIN_LIBRARY = Path(__file__).resolve().parent / "library"
_USER_CONFIG = Path.home() / ".agentshelf" / "config.yaml"

ENV_ROOTS = "AGENTSHELF_ROOTS"
ENV_CONFIG = "AGENTSHELF_CONFIG"

DEFAULT_INDEX_NAMES = ("agents.md", "index.md", "README.md")
DEFAULT_CONFIG: dict[str, Any] = {
    "roots": [],
    "default_folders": ["generic"],
    "aliases": {},
    "index_names": list(DEFAULT_INDEX_NAMES),
}

_FILE_COLUMNS = ("file", "path", "document", "prompt", "template", "link")
_NAME_COLUMNS = ("name", "topic", "agent", "title")
_DESCRIPTION_COLUMNS = ("description", "purpose", "summary")
_USE_WHEN_COLUMNS = ("use when", "when to use", "usage", "trigger")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict on failure."""
    try:
        import yaml  # type: ignore[import-untyped]

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except Exception as exc:
        logger.warning("Failed to load %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping, got %s", path, type(data).__name__)
        return {}
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (override wins)."""
    merged = dict(base)
    for k, v in override.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def config_path_from_env() -> Path:
    raw = os.environ.get(ENV_CONFIG, "").strip()
    return Path(raw).expanduser() if raw else _USER_CONFIG


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Return the built-in defaults merged with the YAML config file, if any."""
    config = _deep_merge(DEFAULT_CONFIG, {})
    target = path or config_path_from_env()
    if target.exists():
        overrides = _load_yaml(target)
        if overrides:
            config = _deep_merge(config, overrides)
            logger.info("Loaded catalog config from %s", target)
    elif path is not None:
        logger.warning("Config file not found: %s", path)
    return config


def roots_from_env() -> list[Path]:
    raw = os.environ.get(ENV_ROOTS, "")
    return [Path(part).expanduser() for part in raw.split(os.pathsep) if part.strip()]


# ---------------------------------------------------------------------------
# Index discovery and parsing
# ---------------------------------------------------------------------------


def find_index_file(folder: Path, index_names: Iterable[str] = DEFAULT_INDEX_NAMES) -> Path | None:
    """Return the first index file in *folder* that holds a catalog table.

    Fallback names only count when they hold a table; a table-less primary
    index (the first name) is still returned so callers can report it.
    """
    names = tuple(index_names)
    for name in names:
        candidate = folder / name
        if candidate.is_file() and _has_catalog_table(candidate):
            return candidate
    primary = folder / names[0] if names else None
    return primary if primary is not None and primary.is_file() else None


def _has_catalog_table(path: Path) -> bool:
    try:
        parse_index(path)
    except (IndexParseError, OSError):
        return False
    return True


def discover_folders(
    root: Path, index_names: Iterable[str] = DEFAULT_INDEX_NAMES
) -> list[Path]:
    """Return topic folders under *root* that carry an index, sorted by name.

    A root that is itself a topic folder (index present, no indexed
    sub-folders) is returned as the only folder.
    """
    names = tuple(index_names)
    folders = [
        child
        for child in sorted(root.iterdir(), key=lambda p: p.name.lower())
        if child.is_dir()
        and not child.name.startswith((".", "_"))
        and find_index_file(child, names) is not None
    ]
    if not folders and find_index_file(root, names) is not None:
        return [root]
    return folders


def _pick_column(header: list[str], candidates: tuple[str, ...]) -> str | None:
    for candidate in candidates:
        if candidate in header:
            return candidate
    for candidate in candidates:
        for name in header:
            if name.startswith(candidate):
                return name
    return None


def _title_from_stem(stem: str) -> str:
    return stem.replace("-", " ").replace("_", " ").strip().title()


def parse_index(path: Path, folder: str | None = None) -> FolderIndex:
    """Parse an index file into a :class:`FolderIndex`.

    Every table with a file-like column (or a name column holding links)
    contributes entries in table order. Raises :class:`IndexParseError`
    when no such table exists.
    """
    folder_name = folder if folder is not None else path.parent.name
    text = read_text(path).text
    entries: list[CatalogEntry] = []
    usable = False

    for table in find_tables(text):
        if not table.has_delimiter:
            continue
        raw_header = [name.lower() for name in table.header]
        header = [strip_emphasis(name) for name in raw_header]
        file_col = _pick_column(header, _FILE_COLUMNS) or _pick_column(header, _NAME_COLUMNS)
        if file_col is None:
            continue
        usable = True
        name_col = _pick_column(header, _NAME_COLUMNS)
        desc_col = _pick_column(header, _DESCRIPTION_COLUMNS)
        use_col = _pick_column(header, _USE_WHEN_COLUMNS)

        for offset, record in enumerate(table.records()):
            row = {header[i]: record.get(raw, "") for i, raw in enumerate(raw_header)}
            line = table.line + 2 + offset
            link = extract_link(row.get(file_col, ""))
            if link is None and name_col and name_col != file_col:
                link = extract_link(row.get(name_col, ""))
            if link is None or not link[1].lower().endswith(".md"):
                logger.debug("Skipping index row without a document link: %s:%d", path, line)
                continue
            label, target = link
            if target.startswith("./"):
                target = target[2:]

            name = ""
            if name_col and name_col != file_col:
                cell = row.get(name_col, "")
                cell_link = extract_link(cell)
                name = cell_link[0] if cell_link and "](" in cell else strip_emphasis(cell)
            if not name and label != target:
                name = label
            stem = Path(target).stem
            entries.append(
                CatalogEntry(
                    name=name or _title_from_stem(stem),
                    path=target,
                    description=strip_emphasis(row.get(desc_col, "")) if desc_col else "",
                    use_when=strip_emphasis(row.get(use_col, "")) if use_col else "",
                    folder=folder_name,
                    topic=normalize_topic(stem),
                    line=line,
                )
            )

    if not usable:
        raise IndexParseError(f"No catalog table found in {path}")
    return FolderIndex(folder=folder_name, index_path=str(path), entries=entries)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class PromptCatalog:
    """In-memory catalog over every folder index of every library root."""

    def __init__(
        self,
        roots: Iterable[str | Path] | None = None,
        *,
        config_path: Path | None = None,
        include_builtin: bool = True,
    ) -> None:
        self._explicit_roots = [Path(r).expanduser() for r in roots or []]
        self._config_path = config_path
        self._include_builtin = include_builtin
        self.config: dict[str, Any] = {}
        self._roots: list[Path] = []
        self._indexes: list[FolderIndex] = []
        self._entries: dict[str, CatalogEntry] = {}
        self._paths: dict[str, Path] = {}
        self._aliases: dict[str, str] = {}
        self._load()

    # -- loading ------------------------------------------------------------

    def _candidate_roots(self) -> list[Path]:
        configured = [Path(str(r)).expanduser() for r in self.config.get("roots") or []]
        ordered = [*self._explicit_roots, *roots_from_env(), *configured]
        if self._include_builtin:
            ordered.append(BUILTIN_LIBRARY)
        unique: list[Path] = []
        seen: set[Path] = set()
        for root in ordered:
            resolved = root.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            if not resolved.is_dir():
                logger.warning("Library root does not exist, skipping: %s", root)
                continue
            unique.append(resolved)
        return unique

    def _load(self) -> None:
        self.config = load_config(self._config_path)
        self._roots = self._candidate_roots()
        self._indexes = []
        self._entries = {}
        self._paths = {}
        self._aliases = {
            normalize_topic(alias): normalize_topic(target)
            for alias, target in (self.config.get("aliases") or {}).items()
            if normalize_topic(alias) and normalize_topic(target)
        }
        index_names = tuple(self.config.get("index_names") or DEFAULT_INDEX_NAMES)

        for root in self._roots:
            for folder in discover_folders(root, index_names):
                index_file = find_index_file(folder, index_names)
                if index_file is None:
                    continue
                try:
                    index = parse_index(index_file, folder=folder.name)
                except (IndexParseError, OSError) as exc:
                    logger.warning("Skipping folder %s: %s", folder, exc)
                    continue
                self._indexes.append(index)
                for entry in index.entries:
                    self._register(entry, folder)

        logger.debug(
            "Catalog loaded: %d topic(s) from %d root(s)", len(self._entries), len(self._roots)
        )

    def _register(self, entry: CatalogEntry, folder: Path) -> None:
        key = entry.key
        path = folder / entry.path
        if key in self._entries:
            if self._paths[key] != path:
                logger.info("Topic %s from %s is shadowed by %s", key, path, self._paths[key])
            return
        if not path.is_file():
            logger.debug("Index entry %s points at a missing file: %s", key, path)
        self._entries[key] = entry
        self._paths[key] = path

    def reload(self) -> None:
        """Re-read config and every index from disk."""
        self._load()

    # -- lookups ------------------------------------------------------------

    def _pick(self, keys: list[str]) -> str:
        names = self.config.get("default_folders") or []
        order = {normalize_topic(str(name)): i for i, name in enumerate(names)}
        return min(keys, key=lambda k: (order.get(k.split("/", 1)[0], len(order)), k))

    def _resolve_key(self, topic: str) -> str | None:
        key = normalize_topic(topic)
        if not key:
            return None
        key = self._aliases.get(key, key)
        if key in self._entries:
            return key
        if "/" not in key:
            matches = [k for k in self._entries if k.split("/", 1)[-1] == key]
            if matches:
                return self._pick(matches)
        return None

    def find(self, topic: str) -> Path | None:
        """Return the document path for *topic*, or ``None`` when unregistered."""
        key = self._resolve_key(topic)
        return self._paths[key] if key else None

    def lookup(self, topic: str) -> Path:
        """Return the document path for *topic*.

        Accepts ``folder/topic``, a bare topic, a file name, or a configured
        alias. Raises :class:`TopicNotFoundError` when nothing matches.
        """
        path = self.find(topic)
        if path is None:
            raise TopicNotFoundError(topic, self.topics())
        return path

    def entry(self, topic: str) -> CatalogEntry:
        key = self._resolve_key(topic)
        if key is None:
            raise TopicNotFoundError(topic, self.topics())
        return self._entries[key]

    def document(self, topic: str) -> PromptDocument:
        """Parse and return the prompt document registered for *topic*."""
        entry = self.entry(topic)
        return load_document(self._paths[entry.key], topic=entry.topic, folder=entry.folder)

    # -- listings -----------------------------------------------------------

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    @property
    def indexes(self) -> list[FolderIndex]:
        return list(self._indexes)

    def entries(self, folder: str | None = None) -> list[CatalogEntry]:
        """Return registered entries grouped by folder, optionally limited to one folder."""
        wanted = normalize_topic(folder) if folder else None
        order = {name: i for i, name in enumerate(self.folders())}
        selected = [
            entry
            for entry in self._entries.values()
            if wanted is None or normalize_topic(entry.folder) == wanted
        ]
        return sorted(selected, key=lambda entry: order[entry.folder])

    def folders(self) -> list[str]:
        seen: list[str] = []
        for entry in self._entries.values():
            if entry.folder not in seen:
                seen.append(entry.folder)
        return seen

    def topics(self) -> list[str]:
        return sorted(self._entries)

    def path_of(self, entry: CatalogEntry) -> Path:
        return self._paths[entry.key]

    # -- snapshot -----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready snapshot of the catalog."""
        folders: dict[str, list[dict[str, Any]]] = {}
        for key, entry in self._entries.items():
            item = entry.model_dump(exclude={"line"})
            item["key"] = key
            item["resolved_path"] = str(self._paths[key])
            folders.setdefault(entry.folder, []).append(item)
        return {
            "roots": [str(root) for root in self._roots],
            "aliases": dict(self._aliases),
            "folders": [{"folder": name, "entries": items} for name, items in folders.items()],
        }

    def export(self, path: Path) -> Path:
        """Write the catalog snapshot as JSON."""
        atomic_write_text(path, json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n")
        logger.info("Exported catalog to %s", path)
        return path


# Module-level singleton for convenience
_default_catalog: PromptCatalog | None = None


def get_catalog() -> PromptCatalog:
    """Return the module-level singleton catalog (lazy-loaded)."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = PromptCatalog()
    return _default_catalog
