"""Apply a model response (or a streamed piece of one) to an in-memory FileSet.

The engine is best-effort: malformed or incomplete blocks, unknown target
files and search text that is not in the file are skipped, never raised.
Skips are reported in ApplyResult.skipped for callers that want to surface
"some edits could not be applied".
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .edit_match import count_lines, find_search_match, line_number_at
from .files import FileSet, ProjectFile, find_file, normalize_path
from .markers import (
    NEW_FILE,
    UPDATE_FILE,
    FileBlock,
    SearchReplaceOp,
    extract_file_content,
    find_project_name,
    has_file_marker,
    iter_file_blocks,
    iter_search_replace,
    normalize_newlines,
)
from .utils import dbg, preview

# [start_line, end_line], 1-indexed and inclusive
ChangeRecord = Tuple[int, int]

SKIP_FILE_NOT_FOUND = "file_not_found"
SKIP_SEARCH_NOT_FOUND = "search_not_found"


@dataclass
class SkippedOp:
    path: str
    reason: str
    search: str = ""


@dataclass
class ApplyResult:
    files: FileSet
    changed_ranges: List[ChangeRecord] = field(default_factory=list)
    project_name: Optional[str] = None
    skipped: List[SkippedOp] = field(default_factory=list)
    # Paths created or edited, in first-touch order
    touched: List[str] = field(default_factory=list)

    def touch(self, path: str) -> None:
        if path not in self.touched:
            self.touched.append(path)

    def merge(self, other: "ApplyResult") -> None:
        self.changed_ranges.extend(other.changed_ranges)
        self.skipped.extend(other.skipped)
        for path in other.touched:
            self.touch(path)
        if other.project_name:
            self.project_name = other.project_name


def extract_project_name(response: str) -> Optional[str]:
    return find_project_name(normalize_newlines(response))


def apply_search_replace(content: str, op: SearchReplaceOp) -> Tuple[str, Optional[ChangeRecord]]:
    """Apply one operation to content. Returns (new_content, change) with change None on a miss.

    A blank search prepends the replace text on its own line(s). Otherwise only
    the leftmost match is replaced.
    """
    if op.is_insert:
        return f"{op.replace}\n{content}", (1, count_lines(op.replace))
    m = find_search_match(content, op.search)
    if m is None:
        return content, None
    start, end, _ = m
    start_line = line_number_at(content, start)
    end_line = start_line + count_lines(op.replace) - 1
    return content[:start] + op.replace + content[end:], (start_line, end_line)


def apply_ops(target: ProjectFile, ops: List[SearchReplaceOp], result: ApplyResult) -> int:
    """Apply ops to target in order. Returns how many applied."""
    applied = 0
    for op in ops:
        new_content, change = apply_search_replace(target.content, op)
        if change is None:
            dbg(f"search_replace: no match in {target.path} for {preview(op.search)}")
            result.skipped.append(SkippedOp(target.path, SKIP_SEARCH_NOT_FOUND, op.search))
            continue
        target.content = new_content
        result.changed_ranges.append(change)
        result.touch(target.path)
        applied += 1
    return applied


def apply_update_block(text: str, block: FileBlock, result: ApplyResult, pos: Optional[int] = None) -> int:
    """Apply the complete SEARCH/REPLACE operations of an UPDATE_FILE block.

    Operations starting before pos are skipped (already applied by an earlier
    call). Returns the offset just past the last complete operation, or the
    scan start when there was none.
    """
    scan_from = max(block.body_start, pos or 0)
    ops = list(iter_search_replace(text, scan_from, block.end))
    consumed = ops[-1].end if ops else scan_from
    path = normalize_path(block.path)
    idx = find_file(result.files, path)
    if idx == -1:
        dbg(f"update_file: {path} not in project; skipping {len(ops)} op(s)")
        result.skipped.extend(SkippedOp(path, SKIP_FILE_NOT_FOUND, op.search) for op in ops)
        return consumed
    apply_ops(result.files[idx], ops, result)
    return consumed


def apply_new_block(block: FileBlock, result: ApplyResult) -> Optional[ProjectFile]:
    """Create or wholesale overwrite the block's file."""
    path = normalize_path(block.path)
    if not path:
        dbg(f"new_file: empty path after normalizing {block.path!r}")
        return None
    content = extract_file_content(block.body)
    idx = find_file(result.files, path)
    if idx == -1:
        f = ProjectFile(path=path, content=content)
        result.files.append(f)
    else:
        f = result.files[idx]
        f.path = path
        f.content = content
    result.touch(path)
    return f


def apply_bare_ops(text: str, result: ApplyResult, pos: int = 0) -> int:
    """Apply unwrapped SEARCH/REPLACE operations to the first file. Returns the consumed offset."""
    ops = list(iter_search_replace(text, pos))
    if not ops:
        return pos
    if not result.files:
        dbg(f"bare search_replace: no files; skipping {len(ops)} op(s)")
        result.skipped.extend(SkippedOp("", SKIP_FILE_NOT_FOUND, op.search) for op in ops)
    else:
        apply_ops(result.files[0], ops, result)
    return ops[-1].end


def apply_chunk(chunk: str, files: FileSet) -> ApplyResult:
    """Apply every recognizable block in chunk to files (mutated in place).

    UPDATE_FILE blocks are applied first, then NEW_FILE blocks. Bare
    SEARCH/REPLACE operations are applied to the first file only when the
    chunk holds no NEW_FILE block and no UPDATE_FILE start marker at all.
    """
    text = normalize_newlines(chunk)
    result = ApplyResult(files=files)
    result.project_name = find_project_name(text)

    for block in iter_file_blocks(text, UPDATE_FILE):
        apply_update_block(text, block, result)

    new_blocks = list(iter_file_blocks(text, NEW_FILE))
    for block in new_blocks:
        apply_new_block(block, result)

    if not new_blocks and not has_file_marker(text, UPDATE_FILE):
        apply_bare_ops(text, result)

    dbg(
        f"apply_chunk: len={len(text)} new={len(new_blocks)} "
        f"changes={len(result.changed_ranges)} skipped={len(result.skipped)} touched={result.touched}"
    )
    return result
