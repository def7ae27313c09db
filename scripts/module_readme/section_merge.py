"""Section merge engine for Markdown documents.

A document is handled as a list of lines. A section starts at a heading line
(the marker, e.g. ``## Parameters``) and ends before the next heading of the
same or a shallower level, or at the end of the document. Deeper headings such
as ``### Parameter: `name` `` belong to the section. Lines inside fenced code
blocks are never treated as headings.

All functions are pure: they return new line lists and leave their inputs
untouched.
"""

import re
from typing import Iterator, List, Optional, Sequence, Tuple

_HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_FENCE_PATTERN = re.compile(r"^\s*(`{3,}|~{3,})")


def heading_level(line: str) -> Optional[int]:
    """Return the ATX heading level of a line, or None if it is not a heading."""
    match = _HEADING_PATTERN.match(line)
    if not match:
        return None
    return len(match.group(1))


def _heading_text(line: str) -> str:
    match = _HEADING_PATTERN.match(line)
    return (match.group(2) or "").strip() if match else ""


def _update_fence(line: str, fence: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Return whether a line is a fence line, and the fence open after it."""
    fence_match = _FENCE_PATTERN.match(line)
    if not fence_match:
        return False, fence
    token = fence_match.group(1)
    if fence is None:
        return True, token
    if token[0] == fence[0] and len(token) >= len(fence) and not line.strip()[len(token):].strip():
        return True, None
    return True, fence


def iter_headings(document: Sequence[str]) -> Iterator[Tuple[int, int, str]]:
    """Yield (index, level, text) for every heading outside fenced code blocks.

    Args:
        document: The document lines.
    """
    fence: Optional[str] = None
    for index, line in enumerate(document):
        is_fence, fence = _update_fence(line, fence)
        if is_fence or fence is not None:
            continue
        level = heading_level(line)
        if level is not None:
            yield index, level, _heading_text(line)


def escape_headings(text: str) -> str:
    """Escape the lines of free text that would otherwise read as headings.

    Free text such as a description must never open or close a section. Lines
    inside fenced code blocks are left alone, and a fence left open by the text
    is closed.

    Args:
        text: The text to escape, e.g. 'Required. Name.\\n# Caution'.

    Returns:
        The text with a backslash before the first '#' of every heading line.
    """
    lines = []
    fence: Optional[str] = None
    for line in (text or "").splitlines():
        is_fence, fence = _update_fence(line, fence)
        if not is_fence and fence is None and heading_level(line) is not None:
            line = line.replace("#", "\\#", 1)
        lines.append(line)
    if fence is not None:
        lines.append(fence)
    return "\n".join(lines)


def github_anchor(text: str) -> str:
    """Convert heading text to the anchor GitHub generates for it.

    Args:
        text: Heading text, e.g. 'Parameter: `lock.kind`'.

    Returns:
        The anchor without '#', e.g. 'parameter-lockkind'.
    """
    anchor = text.strip().lower()
    anchor = re.sub(r"[^\w\- ]", "", anchor)
    return anchor.replace(" ", "-")


def find_section(document: Sequence[str], marker: str) -> Optional[Tuple[int, int]]:
    """Locate the span of a section.

    Args:
        document: The document lines.
        marker: The section heading line, e.g. '## Outputs'.

    Returns:
        (start, end) line indexes, end exclusive, or None if the marker is absent.
        A section running to the end of the document ends at len(document).
    """
    marker_level = heading_level(marker)
    if marker_level is None:
        raise ValueError(f"Section marker is not a Markdown heading: {marker!r}")
    marker_text = _heading_text(marker)

    start: Optional[int] = None
    for index, level, text in iter_headings(document):
        if start is None:
            if level == marker_level and text == marker_text:
                start = index
            continue
        if level <= marker_level:
            return start, index

    if start is None:
        return None
    return start, len(document)


def _strip_blank_edges(lines: Sequence[str]) -> List[str]:
    stripped = list(lines)
    while stripped and not stripped[0].strip():
        stripped.pop(0)
    while stripped and not stripped[-1].strip():
        stripped.pop()
    return stripped


def merge_section(
    document: Sequence[str],
    fragment: Sequence[str],
    marker: str,
    before: Sequence[str] = (),
) -> List[str]:
    """Replace (or insert) a section with new content.

    Args:
        document: The current document lines.
        fragment: The new section body, without the heading.
        marker: The section heading line, e.g. '## Parameters'.
        before: Markers of sections that must follow this one. When the marker
            is absent, the section is inserted before the first of them found in
            the document, otherwise appended at the end.

    Returns:
        The updated document lines.
    """
    block = [marker, "", *_strip_blank_edges(fragment), ""]
    if len(block) == 3:
        block = [marker, ""]

    span = find_section(document, marker)
    if span is not None:
        start, end = span
        return list(document[:start]) + block + list(document[end:])

    insert_at = len(document)
    for later_marker in before:
        later_span = find_section(document, later_marker)
        if later_span is not None:
            insert_at = min(insert_at, later_span[0])

    head = list(document[:insert_at])
    if head and head[-1].strip():
        head.append("")
    return head + block + list(document[insert_at:])


def remove_section(document: Sequence[str], marker: str) -> List[str]:
    """Remove a section, heading included. Absent sections are a no-op."""
    span = find_section(document, marker)
    if span is None:
        return list(document)
    start, end = span
    return list(document[:start]) + list(document[end:])


def merge_header(document: Sequence[str], fragment: Sequence[str]) -> List[str]:
    """Replace the title block: every line before the first level-2-or-deeper heading.

    Args:
        document: The current document lines.
        fragment: The new title block, starting with the '# Title' line.

    Returns:
        The updated document lines.
    """
    end = len(document)
    for index, level, _ in iter_headings(document):
        if level >= 2:
            end = index
            break
    return _strip_blank_edges(fragment) + [""] + list(document[end:])


def section_headings(document: Sequence[str], level: int = 2) -> List[str]:
    """Return the text of every heading of the given level, in document order."""
    return [text for _, heading, text in iter_headings(document) if heading == level]


def detect_newline(text: Optional[str]) -> str:
    """Return the newline sequence a document uses, '\\r\\n' or '\\n'."""
    return "\r\n" if text and "\r\n" in text else "\n"


def split_document(text: Optional[str], newline: str = "\n") -> List[str]:
    """Split a document into lines on its newline sequence only.

    Other line separators such as form feeds stay part of their line, so that
    joining the lines back with the same newline restores the text exactly.
    """
    if not text:
        return []
    lines = text.split(newline)
    if lines[-1] == "":
        lines.pop()
    return lines


def join_document(lines: Sequence[str], newline: str = "\n") -> str:
    """Join document lines, ending the last one with the newline sequence."""
    return "".join(f"{line}{newline}" for line in lines)
