import os

# Debug logging
DEBUG = os.getenv("SITEPATCH_DEBUG", "").lower() in ("1", "true", "yes")
# Empty path: log to stderr only
DEBUG_LOG_PATH = os.getenv("SITEPATCH_DEBUG_LOG", "")
# SITEPATCH_DEBUG_DUMP_VERBOSE=1: write full responses to the debug log (no truncation).
DEBUG_DUMP_VERBOSE = os.getenv("SITEPATCH_DEBUG_DUMP_VERBOSE", "false").lower() in ("1", "true", "yes")
DEBUG_DUMP_MAX_LINES = int(os.getenv("SITEPATCH_DEBUG_DUMP_MAX_LINES", "20"))
DEBUG_DUMP_MAX_CHARS = int(os.getenv("SITEPATCH_DEBUG_DUMP_MAX_CHARS", "2000"))

# Name reported by the CLI when a response carries no project name block
DEFAULT_PROJECT_NAME = os.getenv("SITEPATCH_DEFAULT_PROJECT_NAME", "Untitled Project")

# Extensions read from a project directory
PROJECT_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv(
        "SITEPATCH_PROJECT_EXTENSIONS", ".html,.htm,.css,.js,.json,.svg,.txt,.md"
    ).split(",")
    if ext.strip()
)
