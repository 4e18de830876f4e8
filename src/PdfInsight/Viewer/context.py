"""Page text shared with the model as context.

The current page's text is budgeted to ``max_length`` characters. A user
selection is wrapped in ``<pdf-selection>`` tags and the window around it is
kept; elided text is marked with ``<truncated-content/>``.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

__all__ = [
    "MAX_CONTEXT_LENGTH",
    "TRUNCATED",
    "Selection",
    "find_selection_in_text",
    "format_page_content",
    "build_page_context",
]

MAX_CONTEXT_LENGTH = 15000
TRUNCATED = "<truncated-content/>"
_OPEN = "<pdf-selection>"
_CLOSE = "</pdf-selection>"

_WHITESPACE_RE = re.compile(r"\s+")


class Selection(NamedTuple):
    start: int
    end: int


def find_selection_in_text(page_text: str, selected: Optional[str]) -> Optional[Selection]:
    """Locate ``selected`` in ``page_text``.

    Falls back to a whitespace-insensitive search, mapping the position back
    proportionally, since selections copied from a text layer rarely keep the
    page's exact spacing. Selections of two characters or fewer are ignored.
    """

    if not selected or len(selected) <= 2:
        return None
    start = page_text.find(selected)
    if start >= 0:
        return Selection(start, start + len(selected))

    compact_selected = _WHITESPACE_RE.sub("", selected)
    compact_text = _WHITESPACE_RE.sub("", page_text)
    if not compact_selected or not compact_text:
        return None
    compact_start = compact_text.find(compact_selected)
    if compact_start < 0:
        return None
    start = (compact_start * len(page_text)) // len(compact_text)
    return Selection(start, start + len(selected))


def _mark(text: str, selection: Selection) -> str:
    return (
        text[: selection.start]
        + _OPEN
        + text[selection.start : selection.end]
        + _CLOSE
        + text[selection.end :]
    )


def format_page_content(
    text: str,
    max_length: int = MAX_CONTEXT_LENGTH,
    selection: Optional[Selection] = None,
) -> str:
    if len(text) <= max_length:
        return text if selection is None else _mark(text, selection)
    if selection is None:
        return text[:max_length] + "\n" + TRUNCATED

    selected_length = selection.end - selection.start
    overhead = len(_OPEN + _CLOSE) + len(TRUNCATED) * 2 + 4
    budget = max_length - overhead

    if selected_length > budget:
        half = max(100, budget) // 2
        head = text[selection.start : selection.start + half]
        tail = text[selection.end - half : selection.end]
        return f"{_OPEN}{head}\n{TRUNCATED}\n{tail}{_CLOSE}"

    remaining = budget - selected_length
    before = remaining // 2
    after = remaining - before
    window_start = max(0, selection.start - before)
    window_end = min(len(text), selection.end + after)
    window = text[window_start:window_end]
    local = Selection(selection.start - window_start, selection.end - window_start)

    prefix = TRUNCATED + "\n" if window_start > 0 else ""
    suffix = "\n" + TRUNCATED if window_end < len(text) else ""
    return prefix + _mark(window, local) + suffix


def build_page_context(
    url: str,
    page: int,
    total_pages: int,
    text: str,
    *,
    title: Optional[str] = None,
    selected: Optional[str] = None,
    tool_id: Optional[str] = None,
    max_length: int = MAX_CONTEXT_LENGTH,
) -> str:
    """Header line plus formatted page content, as sent to the model."""

    selection = find_selection_in_text(text, selected) if selected else None
    content = format_page_content(text, max_length, selection)
    header = " | ".join(
        [
            f"PDF viewer ({tool_id})" if tool_id else "PDF viewer",
            f'"{title}"' if title else url,
            f"Current Page: {page}/{total_pages}",
        ]
    )
    return f"{header}\n\nPage content:\n{content}"
