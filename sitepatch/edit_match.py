"""Search match strategies for SEARCH/REPLACE edits.

Models often re-indent or re-wrap markup they "remember", so the primary
strategy treats every whitespace run in the search text as optional
whitespace and also lets whitespace float around ``<`` and ``>``.
Strategies: flexible_whitespace.
"""

import re
from typing import List, Optional, Pattern, Tuple

_WS_RE = re.compile(r"\s+")
_OPT_WS = r"\s*"


def _escape_literal(run: str) -> str:
    """Escape one whitespace-free run, letting whitespace float around angle brackets."""
    out: List[str] = []
    for ch in run:
        if ch in "<>":
            out.append(_OPT_WS + re.escape(ch) + _OPT_WS)
        else:
            out.append(re.escape(ch))
    return "".join(out)


def _collapse(pattern: str) -> str:
    doubled = _OPT_WS + _OPT_WS
    while doubled in pattern:
        pattern = pattern.replace(doubled, _OPT_WS)
    return pattern


def build_flexible_pattern(search: str) -> Optional[Pattern[str]]:
    """Compile a whitespace-tolerant pattern for search. None for blank search.

    Literal runs are escaped before any wildcard is inserted, so nothing in the
    model's text is ever read as pattern syntax. Leading blank lines are
    dropped and leading indentation only matches spaces/tabs, so a match starts
    on the line being edited rather than swallowing the newline before it.
    """
    if not search or not search.strip():
        return None
    body = search.rstrip()
    stripped = body.lstrip()
    indent = body[: len(body) - len(stripped)]
    indent = indent[indent.rfind("\n") + 1:]
    runs = _WS_RE.split(stripped)
    pattern = _collapse(_OPT_WS.join(_escape_literal(run) for run in runs))
    # No float at either end: the match must not reach into neighbouring lines.
    if pattern.startswith(_OPT_WS):
        pattern = pattern[len(_OPT_WS):]
    if pattern.endswith(_OPT_WS):
        pattern = pattern[: -len(_OPT_WS)]
    if indent:
        pattern = r"[ \t]*" + pattern
    return re.compile(pattern)


def _flexible_whitespace_match(file_content: str, search_content: str) -> Optional[Tuple[int, int]]:
    pattern = build_flexible_pattern(search_content)
    if pattern is None:
        return None
    m = pattern.search(file_content)
    if m is None:
        return None
    return (m.start(), m.end())


_MATCH_STRATEGIES: List[Tuple[str, object]] = [
    ("flexible_whitespace", _flexible_whitespace_match),
]


def find_search_match(
    file_content: str,
    search_content: str,
) -> Optional[Tuple[int, int, str]]:
    """Find the leftmost match. Returns (start, end, strategy_name) or None.

    Blank search_content matches at position 0 ("emptySearch").
    """
    if search_content.strip() == "":
        return (0, 0, "emptySearch")
    for name, strategy in _MATCH_STRATEGIES:
        result = strategy(file_content, search_content)
        if result is not None:
            return (result[0], result[1], name)
    return None


def count_lines(text: str) -> int:
    return len((text or "").split("\n"))


def line_number_at(content: str, index: int) -> int:
    """1-indexed line containing offset index."""
    return content.count("\n", 0, index) + 1
