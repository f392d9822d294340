import os
from typing import Optional

from .logging import get_logger

log = get_logger("paths")


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def uri_to_path(uri: str) -> str:
    """Turn a captured-photo URI (``file:///...`` or a plain path) into a local path."""
    s = (uri or "").strip()
    if s.startswith("file://"):
        s = s[len("file://"):]
    return expand_abs(s)


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Find the project root by walking upward from start_dir.

    Markers: .git/, .env, pyproject.toml. Falls back to absolute(start_dir).
    """
    d = os.path.abspath(start_dir or os.getcwd() or ".")
    start = d
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        for marker in (".env", "pyproject.toml"):
            if os.path.isfile(os.path.join(d, marker)):
                return d
        parent = os.path.dirname(d)
        if parent == d:
            log.debug(f"No project marker above {start}; using it as root")
            return start
        d = parent


def var_dir(root_dir: str) -> str:
    """Return the var directory under the project root, creating it if needed."""
    path = os.path.join(os.path.abspath(root_dir), "var")
    os.makedirs(path, exist_ok=True)
    return path
