"""
StubTap Common Utilities

Shared helpers for turning untrusted request fragments into safe filesystem
tokens and for reading JSON fixtures.
"""

import json
import re
from pathlib import Path
from typing import Any, Optional


_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9_-]')


def sanitize_segment(raw: Any) -> str:
    """
    Normalize an untrusted path fragment into a filesystem-safe token.

    Every character outside ``[A-Za-z0-9_-]`` is replaced with ``_``, so
    separators, dots, percent-escapes and null bytes can never reach a path
    join. Non-string values are converted with ``str()`` first.

    Callers must special-case ``None`` themselves: an absent value means
    "no path", not the literal string ``"None"``.

    Args:
        raw: Category name or lookup value taken from a request

    Returns:
        Sanitized token

    Example:
        sanitize_segment('../etc/passwd')  # '___etc_passwd'
    """
    return _UNSAFE_CHARS.sub('_', str(raw))


def safe_json_parse(json_string: str, default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(raw_body, default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


def is_within_root(candidate: Path, root: Path) -> bool:
    """
    Check that ``candidate`` resolves to ``root`` or one of its descendants.

    Both paths are canonicalized (symlinks and ``..`` resolved) before the
    comparison.
    """
    try:
        candidate.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def is_existing_file(path: Path) -> bool:
    """
    ``Path.is_file`` that treats any OS error as "not a file".

    Over-long names raise ``ENAMETOOLONG`` instead of returning False.
    """
    try:
        return path.is_file()
    except (OSError, ValueError):
        return False


def is_existing_dir(path: Path) -> bool:
    """``Path.is_dir`` that treats any OS error as "not a directory"."""
    try:
        return path.is_dir()
    except (OSError, ValueError):
        return False


def relative_key(path: Path, root: Path) -> Optional[str]:
    """
    Convert an absolute path under ``root`` into a cache key.

    Keys always use forward slashes so that the same fixture has the same
    key whichever way it was reached.

    Returns:
        POSIX-style relative path, or None if ``path`` lies outside ``root``
    """
    try:
        return Path(path).resolve().relative_to(root.resolve()).as_posix()
    except (OSError, ValueError):
        return None
