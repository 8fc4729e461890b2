"""Dependency parsing of applications and packages under a program root."""

import json
import os
import posixpath
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

import yaml

from kclkit.imports import (
    _go_dir,
    _go_join,
    _is_file,
    _resolve,
    fix_import_path,
    is_builtin_pkg,
    is_plugin_pkg,
    parse_import,
)

KCL_MOD_PATH_ENV = "${KCL_MOD}"
DEFAULT_KCL_YAML = "kcl.yaml"
DEFAULT_PROJECT_YAML = "project.yaml"


class DepParserError(Exception):
    """Raised when the files of a package cannot be found or read."""


@dataclass
class Option:
    """Names of the settings files and listing flags."""

    kcl_yaml: str = ""
    project_yaml: str = ""
    flag_all: bool = False
    use_abs_path: bool = False

    def _merge(self, other: "Option") -> None:
        if other.kcl_yaml:
            self.kcl_yaml = other.kcl_yaml
        if other.project_yaml:
            self.project_yaml = other.project_yaml

    def _adjust(self) -> None:
        if not self.kcl_yaml:
            self.kcl_yaml = DEFAULT_KCL_YAML
        if not self.project_yaml:
            self.project_yaml = DEFAULT_PROJECT_YAML


class _Color(IntEnum):
    WHITE = 0
    BLACK = 1
    GREY = 2


def _exists(root: str, path: str) -> bool:
    resolved = _resolve(root, path)
    return resolved is not None and os.path.exists(resolved)


def _settings_files(kcl_yaml_path: str, text: str) -> list[str]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise DepParserError(f"{kcl_yaml_path}: {err}") from err
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DepParserError(f"{kcl_yaml_path}: settings must be a mapping")
    configs = data.get("kcl_cli_configs") or {}
    if not isinstance(configs, dict):
        raise DepParserError(f"{kcl_yaml_path}: kcl_cli_configs must be a mapping")
    files = configs.get("file") or []
    if not isinstance(files, list) or not all(isinstance(s, str) for s in files):
        raise DepParserError(f"{kcl_yaml_path}: file must be a list of strings")
    return files


def load_k_file_list(root: str, path: str, option: Option) -> list[str]:
    """Return the KCL files that make up the package or file at path.

    A kcl.yaml in the package directory names the files explicitly; otherwise the
    public, non-test .k files of the directory are used.
    """
    if path.endswith(".k"):
        return [path]
    if _is_file(root, path + ".k"):
        return [path + ".k"]

    kcl_yaml_path = _go_join(path, option.kcl_yaml)
    if _is_file(root, kcl_yaml_path):
        try:
            with open(_resolve(root, kcl_yaml_path), encoding="utf-8") as f:
                text = f.read()
        except OSError as err:
            raise DepParserError(f"{kcl_yaml_path}: {err}") from err

        files = []
        for entry in _settings_files(kcl_yaml_path, text):
            if entry.startswith(KCL_MOD_PATH_ENV):
                golden = entry.replace(KCL_MOD_PATH_ENV + "/", "/")
            else:
                golden = _go_join(path, entry)
            golden = posixpath.normpath(golden.strip("/"))
            if not _exists(root, golden):
                raise DepParserError(f"{kcl_yaml_path}: stat {golden}: no such file or directory")
            files.append(golden)
        if not files:
            raise DepParserError("no kcl file")
        return files

    resolved = _resolve(root, path)
    names: list[str] = []
    if resolved is not None and os.path.isdir(resolved):
        try:
            with os.scandir(resolved) as entries:
                names = sorted(
                    entry.name for entry in entries if not entry.is_dir(follow_symlinks=False)
                )
        except OSError:
            names = []
    k_files = [
        _go_join(path, name)
        for name in names
        if name.endswith(".k") and not name.startswith("_") and not name.endswith("_test.k")
    ]
    if not k_files:
        raise DepParserError("no kcl file")
    return k_files


def _walk(root: str) -> Iterator[str]:
    """Yield slash paths under root in lexical, depth-first order."""

    def visit(directory: str, rel: str) -> Iterator[str]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as err:
            raise DepParserError(f"{rel or '.'}: {err}") from err
        for entry in entries:
            path = f"{rel}/{entry.name}" if rel else entry.name
            yield path
            if entry.is_dir(follow_symlinks=False):
                yield from visit(entry.path, path)

    yield from visit(root, "")


class DepParser:
    """Scans every application under a root and records package imports and files.

    A failure to load a package is kept in ``error`` rather than raised, so the
    packages loaded before it stay usable.
    """

    def __init__(self, root: str, *args: Option) -> None:
        self.root = os.path.normpath(root)
        self.option = Option()
        for opt in args:
            self.option._merge(opt)
        self.option._adjust()

        self.import_map: dict[str, list[str]] = {}
        self._pkg_files: dict[str, list[str]] = {}
        self._touched_files: list[str] | None = None
        self._dag: dict[str, _Color] = {}
        self._touched: list[str] = []
        self._untouched: list[str] = []
        self.error: DepParserError | None = None

        self.k_list: list[str] = []
        self.main_k_list: list[str] = []
        self.kcl_yaml_list: list[str] = []
        self.project_yaml_dirs: list[str] = []
        self._scan()

        app_dirs = [_go_dir(p) for p in self.main_k_list] + [
            _go_dir(p) for p in self.kcl_yaml_list
        ]
        for app_dir in app_dirs:
            try:
                self._load_import_map(app_dir)
            except DepParserError as err:
                self.error = err
                break

    def _scan(self) -> None:
        kcl_yaml_suffix = "/" + self.option.kcl_yaml
        project_yaml_suffix = "/" + self.option.project_yaml
        for path in _walk(self.root):
            if path.startswith(".git"):
                continue
            if path.endswith(".k"):
                base = posixpath.basename(path)
                if not path.endswith("_test.k") and not base.startswith("_"):
                    self.k_list.append(path)
            if path.endswith("/main.k"):
                self.main_k_list.append(path)
            if path.endswith(kcl_yaml_suffix):
                self.kcl_yaml_list.append(path)
            if path.endswith(project_yaml_suffix):
                self.project_yaml_dirs.append(path[: -len(project_yaml_suffix)])

    def _read(self, path: str) -> str:
        resolved = _resolve(self.root, path)
        if resolved is None:
            raise OSError(f"open {path}: invalid argument")
        with open(resolved, "rb") as f:
            return f.read().decode("utf-8", errors="replace")

    def _load_import_map(self, path: str) -> None:
        pkgpath = _go_dir(path) if path.endswith(".k") else path
        if is_builtin_pkg(pkgpath) or is_plugin_pkg(pkgpath):
            return
        if pkgpath in self.import_map:
            return

        files = self._pkg_files.get(pkgpath)
        if files is None:
            try:
                files = load_k_file_list(self.root, pkgpath, self.option)
            except DepParserError as err:
                raise DepParserError(f"package {pkgpath}: {err}") from err
            self._pkg_files[pkgpath] = files

        for file in files:
            try:
                src = self._read(file)
            except OSError as err:
                raise DepParserError(f"package {pkgpath}: {err}") from err
            for raw in parse_import(src):
                import_path = fix_import_path(file, raw)
                imports = self.import_map.setdefault(pkgpath, [])
                if import_path in imports:
                    continue
                imports.append(import_path)
                self._load_import_map(import_path)

        if pkgpath in self.import_map:
            self.import_map[pkgpath].sort()

    def app_files(self, pkgpath: str, include_depend_files: bool) -> list[str]:
        """Return the files of pkgpath, with those of every package it imports if asked."""
        if not include_depend_files:
            return list(self._pkg_files.get(pkgpath, []))
        files: set[str] = set()
        seen: set[str] = set()
        stack = [pkgpath]
        while stack:
            pkg = stack.pop()
            if pkg in seen:
                continue
            seen.add(pkg)
            files.update(self._pkg_files.get(pkg, []))
            stack.extend(self.import_map.get(pkg, []))
        return sorted(files)

    def app_pkgs(self, pkgpath: str, include_depend_files: bool) -> list[str]:
        """Return the packages pkgpath imports, transitively if asked."""
        if not include_depend_files:
            return list(self.import_map.get(pkgpath, []))
        pkgs: set[str] = set()
        seen: set[str] = set()
        stack = [pkgpath]
        while stack:
            pkg = stack.pop()
            if pkg in seen:
                continue
            seen.add(pkg)
            imports = self.import_map.get(pkg, [])
            pkgs.update(imports)
            stack.extend(imports)
        return sorted(pkgs)

    def touched_apps(self, *args: str) -> tuple[list[str], list[str]]:
        """Split the applications into those touched by the given files and the rest."""
        touched_files = list(args)
        if not touched_files:
            return [], []
        if self._touched_files == touched_files:
            return list(self._touched), list(self._untouched)

        self._touched_files = touched_files
        self._dag = {}
        self._touched = []
        self._untouched = []

        for s in touched_files:
            self._dag[_go_dir(s)] = _Color.GREY
            self._dag[s.removesuffix(".k")] = _Color.GREY

        for s in touched_files:
            proj_dir = self._project_yaml_dir(s)
            if not proj_dir:
                continue
            for k in self.k_list:
                if k == proj_dir or k.startswith(proj_dir + "/"):
                    self._dag[_go_dir(k)] = _Color.GREY
                    self._dag[k.removesuffix(".k")] = _Color.GREY

        for main_k in self.main_k_list:
            app = _go_dir(main_k)
            if self._pkg_color(app) != _Color.BLACK:
                self._touched.append(app)
            else:
                self._untouched.append(app)
        return list(self._touched), list(self._untouched)

    def _pkg_color(self, pkgpath: str) -> _Color:
        if "/" not in pkgpath and "\\" not in pkgpath:
            return _Color.BLACK
        if is_builtin_pkg(pkgpath) or is_plugin_pkg(pkgpath):
            return _Color.BLACK
        color = self._dag.get(pkgpath, _Color.WHITE)
        if color != _Color.WHITE:
            return color
        # Provisionally black, so that import cycles terminate.
        self._dag[pkgpath] = _Color.BLACK
        for dep in self.import_map.get(pkgpath, []):
            if self._pkg_color(dep) != _Color.BLACK:
                self._dag[pkgpath] = _Color.GREY
                return _Color.GREY
        return _Color.BLACK

    def _project_yaml_dir(self, pkgpath: str) -> str:
        for s in self.project_yaml_dirs:
            if pkgpath == s or pkgpath.startswith(s + "/"):
                return s
        return ""

    def is_app(self, pkgpath: str) -> bool:
        """Return True if pkgpath holds a main.k or a settings file."""
        return _is_file(self.root, pkgpath + "/main.k") or _is_file(
            self.root, _go_join(pkgpath, self.option.kcl_yaml)
        )

    def dep_pkg_list(self, pkgpath: str) -> list[str]:
        """Return the packages pkgpath imports directly."""
        return list(self.import_map.get(pkgpath, []))

    def pkg_file_list(self, pkgpath: str) -> list[str]:
        """Return the files of pkgpath, or an empty list if it has none."""
        try:
            return load_k_file_list(self.root, pkgpath, self.option)
        except DepParserError:
            return []

    def pkg_list(self) -> list[str]:
        """Return the sorted packages that import something."""
        return sorted(self.import_map)

    def import_map_json(self) -> str:
        """Return the import map as indented JSON with sorted keys."""
        return json.dumps(self.import_map, indent=4, sort_keys=True)