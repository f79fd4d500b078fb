import os
import sys
import time

from . import config


def _write_log_line(line: str) -> None:
    if not config.DEBUG_LOG_PATH:
        return
    try:
        with open(config.DEBUG_LOG_PATH, "a") as f:
            f.write(line + "\n")
    except Exception:
        pass


def dbg(message: str):
    if not config.DEBUG:
        return
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    line = f"[debug] [{ts} pid={os.getpid()}] {message}"
    print(line, file=sys.stderr)
    _write_log_line(line)


def preview(text: str, limit: int = 80) -> str:
    """Single-line repr of text for log messages."""
    s = text or ""
    return repr(s[:limit] + "..." if len(s) > limit else s)


def dbg_dump(label: str, text: str):
    """Dump a response to the debug log. Truncated unless SITEPATCH_DEBUG_DUMP_VERBOSE=1."""
    if not config.DEBUG:
        return
    content = text or ""
    if config.DEBUG_DUMP_VERBOSE:
        body = content
        header = f"[debug_dump] {label}"
    else:
        # Truncated: header + first N non-empty lines / max chars
        max_lines = config.DEBUG_DUMP_MAX_LINES
        max_chars = config.DEBUG_DUMP_MAX_CHARS
        lines = [ln for ln in content.splitlines() if ln.strip()]
        body = "\n".join(lines[:max_lines])
        if len(body) > max_chars:
            body = body[:max_chars]
        truncated = len(lines) > max_lines or len(content) > max_chars
        header = (
            f"[debug_dump] {label} (len={len(content)})"
            f"{' …(truncated)' if truncated else ''}"
        )
    print(header, file=sys.stderr)
    _write_log_line("\n" + header + "\n" + body)
