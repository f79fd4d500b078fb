"""Parse and apply the multi-file response format: new files, search/replace edits, project name."""

from .files import (
    FileSet,
    ProjectFile,
    files_from_records,
    files_to_records,
    normalize_path,
)
from .markers import (
    DIVIDER,
    NEW_FILE_END,
    NEW_FILE_START,
    PROJECT_NAME_END,
    PROJECT_NAME_START,
    REPLACE_END,
    SEARCH_START,
    UPDATE_FILE_END,
    UPDATE_FILE_START,
    SearchReplaceOp,
)
from .output_parser import (
    ParsedFile,
    ParsedResponse,
    apply_parsed_files,
    parse_ai_response,
    parse_new_files,
    strip_blocks_for_display,
)
from .patch_engine import (
    ApplyResult,
    ChangeRecord,
    SkippedOp,
    apply_chunk,
    apply_search_replace,
    extract_project_name,
)
from .stream import StreamApplier

__all__ = [
    "FileSet",
    "ProjectFile",
    "files_from_records",
    "files_to_records",
    "normalize_path",
    "DIVIDER",
    "NEW_FILE_END",
    "NEW_FILE_START",
    "PROJECT_NAME_END",
    "PROJECT_NAME_START",
    "REPLACE_END",
    "SEARCH_START",
    "UPDATE_FILE_END",
    "UPDATE_FILE_START",
    "SearchReplaceOp",
    "ParsedFile",
    "ParsedResponse",
    "apply_parsed_files",
    "parse_ai_response",
    "parse_new_files",
    "strip_blocks_for_display",
    "ApplyResult",
    "ChangeRecord",
    "SkippedOp",
    "apply_chunk",
    "apply_search_replace",
    "extract_project_name",
    "StreamApplier",
]
