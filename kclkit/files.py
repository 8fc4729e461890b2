"""Small file-system and checksum helpers."""

import hashlib
import os
import re
import stat

_MD5_RE = re.compile(r"[a-f0-9]{32}")


def _lstat_mode(path: str) -> int | None:
    try:
        return os.lstat(path).st_mode
    except OSError:
        return None


def file_exists(path: str) -> bool:
    """Return True if path exists and is not a directory (links are not followed)."""
    mode = _lstat_mode(path)
    return mode is not None and not stat.S_ISDIR(mode)


def dir_exists(path: str) -> bool:
    """Return True if path exists and is a directory (links are not followed)."""
    mode = _lstat_mode(path)
    return mode is not None and stat.S_ISDIR(mode)


def is_md5_text(s: str) -> bool:
    """Return True if s, stripped, is a lower-case hexadecimal MD5 digest."""
    return _MD5_RE.fullmatch(s.strip()) is not None


def md5_file(filename: str) -> str:
    """Return the hex MD5 digest of a file, or an empty string if it cannot be read."""
    digest = hashlib.md5()
    try:
        with open(filename, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
    except OSError:
        return ""
    return digest.hexdigest()