"""Marker grammar for the multi-file response format.

Every structural unit in a model response is delimited by paired, uniquely
named tokens, so plain substring search is enough to find them:

    <<<<<<< PROJECT_NAME_START My Site >>>>>>> PROJECT_NAME_END
    <<<<<<< NEW_FILE_START index.html >>>>>>> NEW_FILE_END
    ```html
    ...
    ```
    <<<<<<< UPDATE_FILE_START style.css >>>>>>> UPDATE_FILE_END
    <<<<<<< SEARCH
    ...
    =======
    ...
    >>>>>>> REPLACE

The literal marker strings are shared with the system prompt and must not
change.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

SEARCH_START = "<<<<<<< SEARCH"
DIVIDER = "======="
REPLACE_END = ">>>>>>> REPLACE"
NEW_FILE_START = "<<<<<<< NEW_FILE_START "
NEW_FILE_END = " >>>>>>> NEW_FILE_END"
UPDATE_FILE_START = "<<<<<<< UPDATE_FILE_START "
UPDATE_FILE_END = " >>>>>>> UPDATE_FILE_END"
PROJECT_NAME_START = "<<<<<<< PROJECT_NAME_START"
PROJECT_NAME_END = ">>>>>>> PROJECT_NAME_END"

NEW_FILE = "new"
UPDATE_FILE = "update"

# Scanning uses the tokens without their padding space so a model that drops
# the space before the path or before the end token still parses.
_FILE_TOKENS = {
    NEW_FILE: (NEW_FILE_START.strip(), NEW_FILE_END.strip()),
    UPDATE_FILE: (UPDATE_FILE_START.strip(), UPDATE_FILE_END.strip()),
}
_FILE_START_TOKENS = tuple(start for start, _ in _FILE_TOKENS.values())

# Fence languages recognized in new-file bodies, in priority order
CODE_LANGUAGES = ("html", "css", "javascript", "js")

_FENCE_RE = re.compile(r"```([A-Za-z0-9_+-]*)\s*(.*?)\s*```", re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"```([A-Za-z0-9_+-]*)[^\n]*\n?")


@dataclass
class FileBlock:
    """One NEW_FILE or UPDATE_FILE block located in a response."""

    kind: str
    path: str
    body: str
    start: int
    body_start: int
    end: int
    # False when the body ran to the end of the text: more may still stream in.
    terminated: bool = True


@dataclass
class SearchReplaceOp:
    search: str
    replace: str
    start: int = 0
    end: int = 0

    @property
    def is_insert(self) -> bool:
        return self.search.strip() == ""


def normalize_newlines(text: str) -> str:
    return (text or "").replace("\r\n", "\n").replace("\r", "\n")


def next_file_start(text: str, pos: int) -> int:
    """Offset of the next NEW_FILE or UPDATE_FILE start token at or after pos, or -1."""
    hits = [i for i in (text.find(tok, pos) for tok in _FILE_START_TOKENS) if i != -1]
    return min(hits) if hits else -1


def has_file_marker(text: str, kind: str) -> bool:
    return _FILE_TOKENS[kind][0] in (text or "")


def find_file_block(text: str, kind: str, pos: int = 0) -> Optional[FileBlock]:
    """Find the next complete-header block of the given kind at or after pos.

    The header is ``START <path> END`` on one line; the body runs from the end
    token to the next file start token of either kind, or to the end of text.
    Returns None when no start token follows pos or the first header found is
    still missing its end token. A header whose path is empty or contains
    whitespace is malformed and skipped.
    """
    start_tok, end_tok = _FILE_TOKENS[kind]
    while True:
        start = text.find(start_tok, pos)
        if start == -1:
            return None
        header_start = start + len(start_tok)
        header_end = text.find(end_tok, header_start)
        if header_end == -1:
            return None
        path = text[header_start:header_end].strip()
        if not path or any(ch.isspace() for ch in path):
            pos = header_start
            continue
        body_start = header_end + len(end_tok)
        nxt = next_file_start(text, body_start)
        end = nxt if nxt != -1 else len(text)
        return FileBlock(
            kind=kind,
            path=path,
            body=text[body_start:end],
            start=start,
            body_start=body_start,
            end=end,
            terminated=nxt != -1,
        )


def iter_file_blocks(text: str, kind: str, pos: int = 0) -> Iterator[FileBlock]:
    while True:
        block = find_file_block(text, kind, pos)
        if block is None:
            return
        yield block
        pos = block.end


def find_all_file_blocks(text: str, pos: int = 0) -> List[FileBlock]:
    """Blocks of both kinds in document order."""
    blocks = list(iter_file_blocks(text, UPDATE_FILE, pos)) + list(
        iter_file_blocks(text, NEW_FILE, pos)
    )
    blocks.sort(key=lambda b: b.start)
    return blocks


def _strip_marker_newlines(s: str) -> str:
    # The newline after an opening marker and before a closing one belong to the marker lines.
    if s.startswith("\n"):
        s = s[1:]
    if s.endswith("\n"):
        s = s[:-1]
    return s


def find_search_replace(text: str, pos: int = 0, end: Optional[int] = None) -> Optional[SearchReplaceOp]:
    """Find the next complete SEARCH/=======/REPLACE operation in text[pos:end]."""
    limit = len(text) if end is None else end
    s = text.find(SEARCH_START, pos, limit)
    if s == -1:
        return None
    search_start = s + len(SEARCH_START)
    d = text.find(DIVIDER, search_start, limit)
    if d == -1:
        return None
    replace_start = d + len(DIVIDER)
    r = text.find(REPLACE_END, replace_start, limit)
    if r == -1:
        return None
    return SearchReplaceOp(
        search=_strip_marker_newlines(text[search_start:d]),
        replace=_strip_marker_newlines(text[replace_start:r]),
        start=s,
        end=r + len(REPLACE_END),
    )


def iter_search_replace(text: str, pos: int = 0, end: Optional[int] = None) -> Iterator[SearchReplaceOp]:
    while True:
        op = find_search_replace(text, pos, end)
        if op is None:
            return
        yield op
        pos = op.end


def find_project_name_block(text: str, pos: int = 0) -> Optional[Tuple[str, int, int]]:
    """Return (trimmed name, block start, block end) or None."""
    s = text.find(PROJECT_NAME_START, pos)
    if s == -1:
        return None
    e = text.find(PROJECT_NAME_END, s + len(PROJECT_NAME_START))
    if e == -1:
        return None
    name = text[s + len(PROJECT_NAME_START):e].strip()
    return name, s, e + len(PROJECT_NAME_END)


def find_project_name(text: str) -> Optional[str]:
    found = find_project_name_block(text or "")
    if found is None:
        return None
    return found[0] or None


def extract_fenced_code(body: str, languages: Optional[Tuple[str, ...]] = None) -> Optional[str]:
    """Content of a closed ``` fence in body.

    With languages, the first fence tagged with the highest-priority language
    wins. Without, the first fence of any tag. None when no closed fence matches.
    """
    fences = [(m.group(1).lower(), m.group(2)) for m in _FENCE_RE.finditer(body or "")]
    if not fences:
        return None
    if languages is None:
        return fences[0][1]
    for lang in languages:
        for tag, content in fences:
            if tag == lang:
                return content
    return None


def extract_file_content(body: str) -> str:
    """File content of a new-file body: recognized fence, any fence, open fence, raw text."""
    content = extract_fenced_code(body, CODE_LANGUAGES)
    if content is None:
        content = extract_fenced_code(body)
    if content is None:
        m = _OPEN_FENCE_RE.search(body or "")
        if m is not None and "```" not in body[m.end():]:
            # Fence opened but not closed yet (still streaming)
            content = body[m.end():]
    if content is None:
        content = body or ""
    return content.strip()
