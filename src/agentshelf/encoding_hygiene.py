"""Mojibake detection and repair for prompt documents."""

from __future__ import annotations

# UTF-8 punctuation that was decoded as cp1252 somewhere along the way.
# Longest signatures first so a partial match never wins over a full one.
MOJIBAKE_REPLACEMENTS: dict[str, str] = {
    "\u00c3\u00a2\u00e2\u20ac\u009d\u00e2\u201a\u00ac": "-",
    "\u00e2\u20ac\u201d": "--",
    "\u00e2\u20ac\u201c": "-",
    "\u00e2\u20ac\u2122": "'",
    "\u00e2\u20ac\u02dc": "'",
    "\u00e2\u20ac\u0153": '"',
    "\u00e2\u20ac\u009d": '"',
    "\u00e2\u20ac\u00a6": "...",
    "\u00e2\u2022\u0090": "-",
    "\u00c2\u00a0": " ",
}

C1_CONTROL_SIGNATURE = "C1_CONTROL_RANGE"


def _is_c1_control(ch: str) -> bool:
    return "\u0080" <= ch <= "\u009f"


def scan_text(text: str) -> dict[str, int]:
    """Return mojibake-signature counts found in *text*."""
    counts: dict[str, int] = {}
    remaining = text
    for bad in MOJIBAKE_REPLACEMENTS:
        count = remaining.count(bad)
        if count > 0:
            counts[bad] = count
            remaining = remaining.replace(bad, "")
    c1_count = sum(1 for ch in remaining if _is_c1_control(ch))
    if c1_count > 0:
        counts[C1_CONTROL_SIGNATURE] = c1_count
    return counts


def normalize_text(text: str) -> tuple[str, int]:
    """Return *text* with known signatures repaired and the number of replacements."""
    updated = text
    replacements = 0
    for bad, good in MOJIBAKE_REPLACEMENTS.items():
        if bad not in updated:
            continue
        replacements += updated.count(bad)
        updated = updated.replace(bad, good)
    stray = sum(1 for ch in updated if _is_c1_control(ch))
    if stray:
        updated = "".join(ch for ch in updated if not _is_c1_control(ch))
        replacements += stray
    return updated, replacements


def describe_signature(signature: str) -> str:
    """Human-readable label for a signature returned by :func:`scan_text`."""
    if signature == C1_CONTROL_SIGNATURE:
        return "C1 control characters"
    return repr(signature)
