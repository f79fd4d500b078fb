"""Incremental application of a streamed response.

StreamApplier owns the growing buffer and a cursor marking how far blocks
have been fully applied, so re-scanning the buffer on every network chunk
never applies a block twice:

    applier = StreamApplier(files)
    for piece in stream:
        delta = applier.feed(piece)
        ...  # highlight delta.changed_ranges
    result = applier.finish()

Cancelling a generation is just not calling feed again; edits already
applied stay applied.
"""

from typing import Optional

from .files import FileSet
from .markers import NEW_FILE, UPDATE_FILE, find_all_file_blocks, find_project_name, has_file_marker, normalize_newlines
from .patch_engine import ApplyResult, apply_bare_ops, apply_new_block, apply_update_block
from .utils import dbg, dbg_dump


class StreamApplier:
    def __init__(self, files: Optional[FileSet] = None):
        self.files: FileSet = files if files is not None else []
        self.buffer = ""
        # Everything before cursor belongs to fully applied blocks
        self.cursor = 0
        # Operations starting before this offset have been applied
        self.ops_until = 0
        self.result = ApplyResult(files=self.files)
        self.finished = False
        self._pending_cr = False

    def feed(self, text: str) -> ApplyResult:
        """Append text and apply what is now complete. Returns only this call's changes."""
        if self.finished:
            raise RuntimeError("stream already finished")
        text = text or ""
        if self._pending_cr:
            text = "\r" + text
        # A trailing "\r" may be the first half of "\r\n"
        self._pending_cr = text.endswith("\r")
        if self._pending_cr:
            text = text[:-1]
        self.buffer += normalize_newlines(text)
        return self._drain(final=False)

    def finish(self) -> ApplyResult:
        """Apply the remainder, treating end of text as the end of the last block."""
        if self.finished:
            return self.result
        if self._pending_cr:
            self.buffer += "\n"
            self._pending_cr = False
        self._drain(final=True)
        self.finished = True
        dbg_dump("stream.finish buffer", self.buffer)
        return self.result

    def _drain(self, final: bool) -> ApplyResult:
        text = self.buffer
        delta = ApplyResult(files=self.files)
        if self.result.project_name is None:
            delta.project_name = find_project_name(text)

        blocks = find_all_file_blocks(text, self.cursor)
        for block in blocks:
            done = block.terminated or final
            if block.kind == UPDATE_FILE:
                consumed = apply_update_block(text, block, delta, pos=self.ops_until)
                self.ops_until = max(self.ops_until, consumed)
            else:
                # An open trailing block is re-applied as a preview on each call
                apply_new_block(block, delta)
            if not done:
                break
            self.cursor = block.end
            self.ops_until = max(self.ops_until, block.end)

        if not has_file_marker(text, NEW_FILE) and not has_file_marker(text, UPDATE_FILE):
            self.ops_until = apply_bare_ops(text, delta, pos=max(self.cursor, self.ops_until))

        self.result.merge(delta)
        if delta.changed_ranges or delta.touched:
            dbg(
                f"stream: cursor={self.cursor} ops_until={self.ops_until} "
                f"changes={len(delta.changed_ranges)} touched={delta.touched}"
            )
        return delta
