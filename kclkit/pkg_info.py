"""Finding the package root and package path of a working directory."""

import os


class PkgInfoError(Exception):
    """Raised when no package root holding kcl.mod is found."""


def _expand_env(work_dir: str) -> str:
    start = work_dir.find("${")
    if start < 0:
        return work_dir
    end = work_dir.find("}")
    if end <= start:
        return work_dir
    key = work_dir[start + 2 : end]
    return work_dir.replace("${" + key + "}", os.environ.get(key, ""), 1)


def find_pkg_info(work_dir: str = "") -> tuple[str, str]:
    """Return the package root above work_dir and the path of work_dir inside it.

    Both are slash-separated; a ${NAME} reference in work_dir is replaced from the
    environment first.
    """
    wd = _expand_env(work_dir) or os.getcwd()
    wd = os.path.abspath(wd)
    if not wd:
        raise PkgInfoError("not found pkg root")

    root = wd
    while root:
        if os.path.exists(os.path.join(root, "kcl.mod")):
            pkgpath = os.path.relpath(wd, root)
            return root.replace(os.sep, "/"), pkgpath.replace(os.sep, "/")
        root = os.path.dirname(root)
        if not root or root == "/" or root == os.path.dirname(root):
            break
    raise PkgInfoError("pkgroot: not found")