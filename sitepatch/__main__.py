"""Command-line driver.

Usage:
  python -m sitepatch apply response.txt --project site/
  python -m sitepatch apply - --project site/ --chunk-size 64 --dry-run < response.txt
  python -m sitepatch parse response.txt
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .files import FileSet, language_for_path, load_project_dir, write_project_dir
from .output_parser import parse_ai_response, strip_blocks_for_display
from .patch_engine import ApplyResult, apply_chunk
from .stream import StreamApplier
from .utils import dbg, dbg_dump


def _read_response(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _load_files(project: Path) -> FileSet:
    if not project.exists():
        dbg(f"cli: {project} does not exist; starting from an empty project")
        return []
    return load_project_dir(project)


def _run_apply(response: str, files: FileSet, chunk_size: int) -> ApplyResult:
    if chunk_size <= 0:
        return apply_chunk(response, files)
    applier = StreamApplier(files)
    for i in range(0, len(response), chunk_size):
        applier.feed(response[i:i + chunk_size])
    return applier.finish()


def cmd_apply(args: argparse.Namespace) -> int:
    response = _read_response(args.response)
    dbg_dump("cli.apply response", response)
    project = Path(args.project)
    files = _load_files(project)
    result = _run_apply(response, files, args.chunk_size)
    written: List[str] = []
    if not args.dry_run and result.touched:
        touched = [f for f in result.files if f.path in result.touched]
        written = write_project_dir(project, touched)

    project_name = result.project_name or config.DEFAULT_PROJECT_NAME
    if args.json:
        payload = {
            "project_name": project_name,
            "touched": result.touched,
            "written": written,
            "changed_ranges": [list(r) for r in result.changed_ranges],
            "skipped": [{"path": s.path, "reason": s.reason} for s in result.skipped],
        }
        print(json.dumps(payload, indent=2))
        return 0
    print(f"project: {project_name}")
    for path in result.touched:
        print(f"  {'would write' if args.dry_run else 'wrote'} {path}")
    for start, end in result.changed_ranges:
        print(f"  changed lines {start}-{end}")
    for s in result.skipped:
        print(f"  skipped {s.path or '(no file)'}: {s.reason}")
    message = strip_blocks_for_display(response)
    if message:
        print("")
        print(message)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    parsed = parse_ai_response(_read_response(args.response))
    payload = {
        "project_name": parsed.project_name,
        "files": [
            {
                "path": f.path,
                "language": language_for_path(f.path),
                "action": f.action,
                "content": f.content,
                "ops": [{"search": op.search, "replace": op.replace} for op in f.ops],
            }
            for f in parsed.files
        ],
    }
    print(json.dumps(payload, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sitepatch", description="Apply model responses to a site project.")
    sub = parser.add_subparsers(dest="command")
    sub.required = True

    p_apply = sub.add_parser("apply", help="apply a response to a project directory")
    p_apply.add_argument("response", help="response file, or - for stdin")
    p_apply.add_argument("--project", required=True, help="project directory")
    p_apply.add_argument("--dry-run", action="store_true", help="do not write files")
    p_apply.add_argument("--json", action="store_true", help="print a JSON summary")
    p_apply.add_argument(
        "--chunk-size",
        type=int,
        default=0,
        help="feed the response in pieces of this many characters, as a stream would",
    )
    p_apply.set_defaults(func=cmd_apply)

    p_parse = sub.add_parser("parse", help="print the parsed file directives as JSON")
    p_parse.add_argument("response", help="response file, or - for stdin")
    p_parse.set_defaults(func=cmd_parse)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (FileNotFoundError, ValueError, IOError) as exc:
        print(f"sitepatch: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
