"""Whole-response parser: turn a finished model response into file directives.

Unlike apply_chunk, which patches a FileSet as text streams in, this reads a
complete response into a ParsedResponse first, so callers can inspect what
the model asked for before applying it with apply_parsed_files.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .files import FileSet, ProjectFile, clone_files, find_file, normalize_path
from .markers import (
    NEW_FILE,
    PROJECT_NAME_END,
    PROJECT_NAME_START,
    REPLACE_END,
    SEARCH_START,
    UPDATE_FILE,
    SearchReplaceOp,
    extract_fenced_code,
    extract_file_content,
    find_all_file_blocks,
    find_project_name,
    iter_file_blocks,
    iter_search_replace,
    normalize_newlines,
)
from .patch_engine import apply_search_replace
from .utils import dbg, preview

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_SEARCH_REPLACE = "search_replace"

# Bare fenced blocks in a response without any file markers
_BARE_BLOCK_TARGETS = (
    (("html",), "index.html"),
    (("css",), "style.css"),
    (("javascript", "js"), "script.js"),
)


@dataclass
class ParsedFile:
    path: str
    content: str = ""
    action: str = ACTION_CREATE
    ops: List[SearchReplaceOp] = field(default_factory=list)


@dataclass
class ParsedResponse:
    project_name: Optional[str] = None
    files: List[ParsedFile] = field(default_factory=list)


def _parse_update_body(text: str, start: int, end: int) -> List[SearchReplaceOp]:
    return [
        SearchReplaceOp(search=op.search.strip(), replace=op.replace.strip(), start=op.start, end=op.end)
        for op in iter_search_replace(text, start, end)
    ]


def parse_ai_response(response: str) -> ParsedResponse:
    text = normalize_newlines(response)
    result = ParsedResponse(project_name=find_project_name(text))

    for block in find_all_file_blocks(text):
        path = normalize_path(block.path)
        if not path:
            continue
        if block.kind == NEW_FILE:
            result.files.append(ParsedFile(path=path, content=extract_file_content(block.body)))
            continue
        if SEARCH_START in block.body:
            ops = _parse_update_body(text, block.body_start, block.end)
            result.files.append(ParsedFile(path=path, action=ACTION_SEARCH_REPLACE, ops=ops))
            continue
        # Legacy: full replacement content inside an UPDATE_FILE block
        code = extract_fenced_code(block.body)
        if code is not None:
            result.files.append(ParsedFile(path=path, content=code.strip(), action=ACTION_UPDATE))

    if not result.files:
        for languages, path in _BARE_BLOCK_TARGETS:
            code = extract_fenced_code(text, languages)
            if code is not None:
                result.files.append(ParsedFile(path=path, content=code.strip()))
        if result.files:
            dbg(f"parse_ai_response: no file markers; bare code blocks -> {[f.path for f in result.files]}")
    return result


def parse_new_files(response: str) -> FileSet:
    """FileSet from the NEW_FILE blocks of an initial generation, in order."""
    text = normalize_newlines(response)
    files: FileSet = []
    for block in iter_file_blocks(text, NEW_FILE):
        path = normalize_path(block.path)
        if not path:
            continue
        content = extract_file_content(block.body)
        idx = find_file(files, path)
        if idx == -1:
            files.append(ProjectFile(path=path, content=content))
        else:
            files[idx].content = content
    return files


def apply_parsed_files(parsed_files: Iterable[ParsedFile], existing: Optional[FileSet] = None) -> FileSet:
    """Apply parsed directives on top of a copy of existing. Existing is not modified.

    A search_replace directive for a file that does not exist yields an empty
    file under that path.
    """
    files = clone_files(existing or [])
    for parsed in parsed_files:
        idx = find_file(files, parsed.path)
        if parsed.action != ACTION_SEARCH_REPLACE:
            if idx == -1:
                files.append(ProjectFile(path=parsed.path, content=parsed.content))
            else:
                files[idx].content = parsed.content
            continue
        if idx == -1:
            dbg(f"apply_parsed_files: cannot apply search/replace to missing {parsed.path}")
            files.append(ProjectFile(path=parsed.path, content=""))
            continue
        target = files[idx]
        for op in parsed.ops:
            new_content, change = apply_search_replace(target.content, op)
            if change is None:
                dbg(f"apply_parsed_files: pattern not found in {parsed.path}: {preview(op.search, 200)}")
                continue
            target.content = new_content
    return files


def _cut_spans(text: str, spans: List[tuple]) -> str:
    out: List[str] = []
    pos = 0
    for start, end in sorted(spans):
        if start < pos:
            start = pos
        out.append(text[pos:start])
        pos = max(pos, end)
    out.append(text[pos:])
    return "".join(out)


def strip_blocks_for_display(response: str) -> str:
    """Remove protocol blocks, leaving only the model's prose for the conversation panel."""
    text = normalize_newlines(response)
    if not text.strip():
        return ""
    spans = []
    name_start = text.find(PROJECT_NAME_START)
    if name_start != -1:
        name_end = text.find(PROJECT_NAME_END, name_start)
        if name_end != -1:
            spans.append((name_start, name_end + len(PROJECT_NAME_END)))
    blocks = find_all_file_blocks(text)
    for block in blocks:
        end = block.end
        if block.kind == UPDATE_FILE:
            # Prose after the last operation of an update block is kept
            ops = list(iter_search_replace(text, block.body_start, block.end))
            if ops:
                end = ops[-1].end
        spans.append((block.start, end))
    if not blocks:
        spans.extend((op.start, op.end) for op in iter_search_replace(text))
    t = _cut_spans(text, spans)
    # Orphan REPLACE ends from partially cut blocks
    t = t.replace(REPLACE_END, "")
    t = re.sub(r"\n{3,}", "\n\n", t)
    return t.strip()
