import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from . import config
from .utils import dbg


@dataclass
class ProjectFile:
    """One file of a generated project."""

    path: str
    content: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content}

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ProjectFile":
        # Older persisted pages stored their text under "html"
        content = record.get("content")
        if content is None:
            content = record.get("html", "")
        return cls(path=normalize_path(str(record.get("path") or "")), content=str(content or ""))


FileSet = List[ProjectFile]


def normalize_path(p: str) -> str:
    """Relative, traversal-free form of a model-supplied path.

    Leading slashes and ``./`` are stripped and every ``..``/``.`` segment is
    dropped rather than rejected. Idempotent.
    """
    p = (p or "").strip().replace("\\", "/")
    parts = [seg for seg in p.split("/") if seg and seg not in (".", "..")]
    return "/".join(parts)


def find_file(files: Iterable[ProjectFile], path: str) -> int:
    target = normalize_path(path)
    for i, f in enumerate(files):
        if normalize_path(f.path) == target:
            return i
    return -1


def files_from_records(records: Iterable[Dict[str, Any]]) -> FileSet:
    files: FileSet = []
    for record in records or []:
        f = ProjectFile.from_dict(record)
        if not f.path:
            continue
        idx = find_file(files, f.path)
        if idx == -1:
            files.append(f)
        else:
            files[idx] = f
    return files


def files_to_records(files: Iterable[ProjectFile]) -> List[Dict[str, str]]:
    return [f.to_dict() for f in files]


def clone_files(files: Iterable[ProjectFile]) -> FileSet:
    return [ProjectFile(path=f.path, content=f.content) for f in files]


def language_for_path(path: str) -> str:
    ext = Path(path or "").suffix.lower()
    if ext in (".html", ".htm"):
        return "html"
    if ext == ".css":
        return "css"
    if ext in (".js", ".mjs", ".javascript"):
        return "javascript"
    return "unknown"


def resolve_under(root: Union[str, Path], rel_path: str) -> Path:
    root_path = Path(root).resolve()
    target = (root_path / normalize_path(rel_path)).resolve()
    try:
        target.relative_to(root_path)
    except ValueError:
        raise ValueError(f"outside root: target={target} root={root_path}")
    if target == root_path:
        raise ValueError(f"empty path under root {root_path}")
    return target


def load_project_dir(root: Union[str, Path]) -> FileSet:
    """Read the project's text files into a FileSet, index.html first."""
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        raise FileNotFoundError(str(root_path))
    files: FileSet = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if name.startswith(".") or Path(name).suffix.lower() not in config.PROJECT_EXTENSIONS:
                continue
            abs_path = Path(dirpath) / name
            rel = abs_path.relative_to(root_path).as_posix()
            files.append(ProjectFile(path=rel, content=abs_path.read_text(encoding="utf-8")))
    files.sort(key=lambda f: (f.path != "index.html", f.path.count("/"), f.path))
    dbg(f"load_project_dir: {root_path} files={len(files)}")
    return files


def _write_atomic(target: Path, content: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        dir=str(target.parent),
        prefix=target.name + ".tmp.",
        encoding="utf-8",
        newline="\n",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            tmp_path.unlink()
            raise
    try:
        tmp_path.replace(target)
    except BaseException:
        tmp_path.unlink()
        raise
    if target.read_text(encoding="utf-8") != content:
        raise IOError(f"write verification failed for {target}")


def write_project_dir(root: Union[str, Path], files: Iterable[ProjectFile]) -> List[str]:
    """Write every file under root. Returns the relative paths written."""
    written: List[str] = []
    for f in files:
        target = resolve_under(root, f.path)
        _write_atomic(target, f.content)
        written.append(normalize_path(f.path))
    dbg(f"write_project_dir: {root} wrote {written}")
    return written
