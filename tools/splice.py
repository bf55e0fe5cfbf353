# tools/splice.py
"""
Textual section splicing for page updates.

This is a splice keyed on the first/last delimiter occurrence, not a markup
parse. Pathological markup (a closing tag inside a string literal after the
real root element, say) can misplace the section.
"""
from __future__ import annotations

import re
from typing import Optional

POSITIONS = ("before_closing", "after_opening", "replace", "append")
DEFAULT_POSITION = "before_closing"

# An opening tag: "<" then a tag name. Skips "=>" arrows and "</" closers.
_OPENING_TAG = re.compile(r"<[A-Za-z][^<>]*>")


def normalize_position(position: Optional[str]) -> str:
    return (position or DEFAULT_POSITION).strip().lower().replace("-", "_")


def splice_section(
    original: str,
    section: str,
    position: Optional[str] = None,
) -> tuple[Optional[str], str]:
    """
    Returns (new_text | None, reason).

    Reason is one of:
      "ok"                spliced
      "no_closing_tag"  before_closing but no "</" after the first char
      "no_opening_tag"  after_opening but no opening tag found
      "unknown_position" position not in POSITIONS
    """
    pos = normalize_position(position)

    if pos == "before_closing":
        idx = original.rfind("</")
        if idx <= 0:
            return None, "no_closing_tag"
        return original[:idx] + "\n" + section + "\n" + original[idx:], "ok"

    if pos == "after_opening":
        m = _OPENING_TAG.search(original)
        if not m:
            return None, "no_opening_tag"
        end = m.end()
        return original[:end] + "\n" + section + "\n" + original[end:], "ok"

    if pos == "replace":
        return section, "ok"

    if pos == "append":
        return original + "\n" + section, "ok"

    return None, "unknown_position"
