"""Dependency parsing of a single application under a program root."""

import os

from kclkit.dep_parser import DepParserError, Option, load_k_file_list
from kclkit.imports import _resolve, fix_import_path, is_builtin_pkg, is_plugin_pkg, parse_import


class SingleAppDepParser:
    """Collects the files and imported packages of one application at a time.

    The result of the last application parsed is kept, so asking about the same
    application again does not scan the files a second time.
    """

    def __init__(self, root: str, *args: Option) -> None:
        self.root = os.path.normpath(root)
        self.option = Option()
        for opt in args:
            self.option._merge(opt)
        self.option._adjust()

        self._app_pkgpath: str | None = None
        self._error: DepParserError | None = None
        self.import_map: dict[str, list[str]] = {}
        self._pkg_files: dict[str, list[str]] = {}
        self._all_files: list[str] = []

    def app_files(self, app_pkgpath: str, include_depend_files: bool) -> list[str]:
        """Return the files of the application, with those of its imports if asked."""
        self._parse_once(app_pkgpath)
        if include_depend_files:
            return list(self._all_files)
        return list(self._pkg_files.get(app_pkgpath, []))

    def app_pkgs(self, app_pkgpath: str, include_depend_files: bool) -> list[str]:
        """Return the packages the application imports, or every package scanned if asked."""
        self._parse_once(app_pkgpath)
        if include_depend_files:
            return sorted(self.import_map)
        return list(self.import_map.get(app_pkgpath, []))

    def _parse_once(self, app_pkgpath: str) -> None:
        if self._app_pkgpath == app_pkgpath:
            if self._error is not None:
                raise self._error
            return

        self._app_pkgpath = app_pkgpath
        self._error = None
        self.import_map = {}
        self._pkg_files = {}
        self._all_files = []

        try:
            self._scan_app_files(app_pkgpath)
        except DepParserError as err:
            self._error = err
            raise

        self._all_files = sorted(
            {file for files in self._pkg_files.values() for file in files}
        )

    def _read(self, path: str) -> str:
        resolved = _resolve(self.root, path)
        if resolved is None:
            raise DepParserError(f"open {path}: invalid argument")
        try:
            with open(resolved, "rb") as f:
                return f.read().decode("utf-8", errors="replace")
        except OSError as err:
            raise DepParserError(f"open {path}: {err}") from err

    def _scan_app_files(self, pkgpath: str) -> None:
        if is_builtin_pkg(pkgpath) or is_plugin_pkg(pkgpath):
            return
        if pkgpath in self._pkg_files:
            return

        try:
            k_files = load_k_file_list(self.root, pkgpath, self.option)
        except DepParserError as err:
            raise DepParserError(f"package {pkgpath}: {err}") from err
        self._pkg_files[pkgpath] = k_files

        imports = {
            fix_import_path(file, raw)
            for file in k_files
            for raw in parse_import(self._read(file))
        }
        import_list = sorted(imports)
        self.import_map[pkgpath] = import_list

        for import_path in import_list:
            self._scan_app_files(import_path)