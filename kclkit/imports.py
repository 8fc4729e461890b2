"""Parsing import statements and resolving import paths inside a program root."""

import os
import posixpath

STANDARD_SYSTEM_MODULES = frozenset(
    {
        "collection",
        "net",
        "math",
        "datetime",
        "regex",
        "yaml",
        "json",
        "crypto",
        "base64",
        "testing",
        "units",
        "manifests",
    }
)

_LONG_STRING_QUOTES = ('"""', "'''")


def _go_dir(path: str) -> str:
    """Return the directory part of a slash path, "." when there is none."""
    parent = posixpath.dirname(path)
    return posixpath.normpath(parent) if parent else "."


def _go_join(*parts: str) -> str:
    """Join slash path elements, ignoring empty ones, and clean the result."""
    kept = [part for part in parts if part]
    if not kept:
        return ""
    return posixpath.normpath("/".join(kept))


def _valid_path(path: str) -> bool:
    if path == ".":
        return True
    if not path or path.startswith("/") or path.endswith("/"):
        return False
    return all(elem not in ("", ".", "..") for elem in path.split("/"))


def _resolve(root: str, path: str) -> str | None:
    """Map a slash path relative to root onto the file system, or None if it is malformed."""
    if not _valid_path(path):
        return None
    if path == ".":
        return root
    return os.path.join(root, *path.split("/"))


def _is_dir(root: str, path: str) -> bool:
    resolved = _resolve(root, path)
    return resolved is not None and os.path.isdir(resolved)


def _is_file(root: str, path: str) -> bool:
    resolved = _resolve(root, path)
    return resolved is not None and os.path.exists(resolved) and not os.path.isdir(resolved)


def is_builtin_pkg(pkgpath: str) -> bool:
    """Return True if pkgpath names a standard system module."""
    return pkgpath in STANDARD_SYSTEM_MODULES


def is_plugin_pkg(pkgpath: str) -> bool:
    """Return True if pkgpath names a plugin package."""
    return pkgpath.startswith("kcl_plugin/") or pkgpath.startswith("kcl_plugin.")


def should_ignore(name: str) -> bool:
    """Return True for non-KCL files, private _xxx.k files and xxx_test.k files."""
    return not name.endswith(".k") or name.startswith("_") or name.endswith("_test.k")


def parse_import(code: str) -> list[str]:
    """Return the sorted, distinct import paths from the leading import statements of code."""
    found: set[str] = set()
    long_quote = ""
    for line in code.split("\n"):
        line_code = line.strip()
        hash_at = line_code.find("#")
        if hash_at >= 0:
            line_code = line_code[:hash_at].strip()
        if not line_code:
            continue

        if long_quote:
            if line_code.endswith(long_quote):
                long_quote = ""
            continue

        opening = next((q for q in _LONG_STRING_QUOTES if line_code.startswith(q)), None)
        if opening is not None:
            if not line_code[len(opening):].endswith(opening):
                long_quote = opening
            continue
        if line_code.startswith(('"', "'")):
            continue

        fields = line_code.split()
        if not fields[0].startswith("import"):
            break
        if len(fields) >= 2:
            found.add(fields[1].strip("'\""))
    return sorted(found)


def fix_import_path(filepath: str, import_path: str) -> str:
    """Turn an import path written in filepath into a slash-separated path from the root."""
    if not import_path.startswith("."):
        return import_path.replace(".", "/")

    pkgpath = _go_dir(filepath) if filepath.endswith(".k") else filepath

    stripped = import_path.lstrip(".")
    dot_count = len(import_path) - len(stripped)
    rest = stripped.replace(".", "/")

    if dot_count == 1:
        return pkgpath + "/" + rest

    parts = pkgpath.split("/")
    # A relative import reaching above the root is pinned to the root.
    dot_count = min(dot_count, len(parts) + 1)
    return "/".join(parts[: len(parts) - (dot_count - 1)] + [rest])


def fix_path(root: str, path: str) -> str:
    """Resolve an import or file path to an existing directory or .k file where possible."""
    if path.endswith(".k"):
        return path
    if _is_dir(root, path):
        return path
    if _is_file(root, path + ".k"):
        return path + ".k"
    return path


def list_k_files(root: str, path: str) -> list[str]:
    """List the KCL files that path stands for: itself, the files of its directory, or path.k."""
    if path.endswith(".k"):
        return [path]

    if _is_dir(root, path):
        try:
            with os.scandir(_resolve(root, path)) as entries:
                names = sorted(
                    entry.name
                    for entry in entries
                    if not entry.is_dir(follow_symlinks=False)
                )
        except OSError:
            return []
        return [_go_join(path, name) for name in names if not should_ignore(name)]

    if _is_file(root, path + ".k"):
        return [path + ".k"]
    return []