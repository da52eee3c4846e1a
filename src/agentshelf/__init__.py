"""agentshelf - catalog, lookup, and lint tooling for markdown prompt libraries."""

from importlib.metadata import PackageNotFoundError, version

from agentshelf.catalog import PromptCatalog, get_catalog
from agentshelf.errors import (
    CatalogError,
    IndexParseError,
    MissingPlaceholderError,
    TopicNotFoundError,
)
from agentshelf.schemas import CatalogEntry, LintReport, PromptDocument

__all__ = [
    "CatalogEntry",
    "CatalogError",
    "IndexParseError",
    "LintReport",
    "MissingPlaceholderError",
    "PromptCatalog",
    "PromptDocument",
    "TopicNotFoundError",
    "get_catalog",
]

try:
    __version__ = version("agentshelf")
except PackageNotFoundError:
    __version__ = "0.0.0"
