"""Text transforms applied while merging rule documents.

Comments follow the caller's delimiters, HTML-style by default::

    <!-- maintainer note, not for the assistant -->

Headings are ATX top-level headings (``# Title``). Lines inside fenced
code blocks are never headings, so shell comments in examples survive.

All functions are string-based (no file I/O). Callers handle persistence.
"""

from __future__ import annotations

import re

DEFAULT_DELIMITERS = ("<!--", "-->")

_HEADING_RE = re.compile(r"^#(?!#)[ \t]+(?P<text>.*?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")


def _comment_patterns(open_: str, close: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Compile whole-line and inline patterns for one comment syntax."""
    close_re = re.escape(close)
    body = rf"{re.escape(open_)}(?:(?!{close_re}).)*{close_re}"
    whole_line = re.compile(rf"^[ \t]*{body}[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
    inline = re.compile(body, re.DOTALL)
    return whole_line, inline


def strip_comments(
    content: str,
    delimiters: tuple[str, str] = DEFAULT_DELIMITERS,
) -> str:
    """Remove comment blocks from *content*.

    A comment occupying whole lines is removed together with its line
    break; a comment embedded in a line is cut out and the rest of the
    line kept. An unterminated opener is left as-is.
    """
    whole_line, inline = _comment_patterns(*delimiters)
    content = whole_line.sub("", content)
    return inline.sub("", content)


def heading_text(line: str) -> str | None:
    """Return the text of a top-level heading line, or None."""
    m = _HEADING_RE.match(line.rstrip("\r\n"))
    if m is None:
        return None
    return m.group("text").strip()


def iter_headings(content: str) -> list[tuple[int, str]]:
    """List ``(line_index, text)`` for top-level headings outside code fences."""
    found: list[tuple[int, str]] = []
    fence: str | None = None
    for index, line in enumerate(content.splitlines()):
        m = _FENCE_RE.match(line)
        if m:
            marker = m.group(1)
            if fence is None:
                fence = marker[0] * len(marker)
            elif marker.startswith(fence):
                fence = None
            continue
        if fence is not None:
            continue
        text = heading_text(line)
        if text is not None:
            found.append((index, text))
    return found


def merge_headers(content: str) -> str:
    """Drop repeated top-level heading lines, keeping the first of each.

    Only the heading line itself is removed; the body under a dropped
    heading stays where it is and so reads as part of the first one.
    """
    seen: set[str] = set()
    drop: set[int] = set()
    for index, text in iter_headings(content):
        if text in seen:
            drop.add(index)
        else:
            seen.add(text)
    if not drop:
        return content
    lines = content.splitlines(keepends=True)
    return "".join(line for i, line in enumerate(lines) if i not in drop)
