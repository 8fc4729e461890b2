import pytest

from kclkit.dep_parser import DepParserError, Option
from kclkit.single_app import SingleAppDepParser


def _write(root, files):
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


KCL_YAML = """kcl_cli_configs:
  file:
    - ../main.k
    - before/base.k
    - main.k
  disable_none: true
"""


@pytest.fixture
def app_root(tmp_path):
    _write(
        tmp_path,
        {
            "kcl.mod": "",
            "main.k": "a = 1\n",
            "app0/kcl.yaml": KCL_YAML,
            "app0/main.k": "import .sub\n\nx = sub.y\n",
            "app0/before/base.k": "b = 2\n",
            "app0/sub/sub.k": "y = 3\n",
            "app0-failed/main.k": "import .sub_not_found\n",
        },
    )
    return tmp_path


@pytest.fixture
def vfs_root(tmp_path):
    _write(
        tmp_path,
        {
            "kcl.mod": "",
            "myapp/main.k": "import mypkg",
            "myapp/base.k": "",
            "mypkg/a.k": "import .subpkg",
            "mypkg/subpkg/b.k": "a = 1",
        },
    )
    return tmp_path


def test_list_dep_files_with_dependencies(app_root):
    parser = SingleAppDepParser(str(app_root), Option())
    files = parser.app_files("app0", True)
    assert sorted(files) == sorted(
        ["main.k", "app0/before/base.k", "app0/main.k", "app0/sub/sub.k"]
    )


def test_app_files_without_dependencies_follow_settings(app_root):
    parser = SingleAppDepParser(str(app_root))
    assert parser.app_files("app0", False) == ["main.k", "app0/before/base.k", "app0/main.k"]


def test_vfs_like_tree(vfs_root):
    parser = SingleAppDepParser(str(vfs_root))
    assert parser.app_files("myapp", False) == ["myapp/base.k", "myapp/main.k"]
    assert parser.app_files("myapp", True) == [
        "myapp/base.k",
        "myapp/main.k",
        "mypkg/a.k",
        "mypkg/subpkg/b.k",
    ]


def test_app_pkgs(vfs_root):
    parser = SingleAppDepParser(str(vfs_root))
    assert parser.app_pkgs("myapp", False) == ["mypkg"]
    assert parser.app_pkgs("myapp", True) == ["myapp", "mypkg", "mypkg/subpkg"]


def test_builtin_imports_are_not_scanned(tmp_path):
    _write(tmp_path, {"kcl.mod": "", "app/main.k": "import math\nimport kcl_plugin.hello\n"})
    parser = SingleAppDepParser(str(tmp_path))
    assert parser.app_pkgs("app", False) == ["kcl_plugin/hello", "math"]
    assert parser.app_pkgs("app", True) == ["app"]
    assert parser.app_files("app", True) == ["app/main.k"]


def test_missing_package_error(app_root):
    parser = SingleAppDepParser(str(app_root))
    with pytest.raises(DepParserError) as info:
        parser.app_files("app0-failed", True)
    assert "package app0-failed/sub_not_found: no kcl file" in str(info.value)


def test_error_is_repeated_for_same_app(app_root):
    parser = SingleAppDepParser(str(app_root))
    with pytest.raises(DepParserError):
        parser.app_pkgs("app0-failed", False)
    with pytest.raises(DepParserError, match="no kcl file"):
        parser.app_files("app0-failed", False)


def test_switching_apps_after_failure(app_root):
    parser = SingleAppDepParser(str(app_root))
    with pytest.raises(DepParserError):
        parser.app_files("app0-failed", True)
    assert parser.app_files("app0", False) == ["main.k", "app0/before/base.k", "app0/main.k"]


def test_import_cycle_terminates(tmp_path):
    _write(
        tmp_path,
        {
            "kcl.mod": "",
            "a/main.k": "import b\n",
            "b/b.k": "import a\n",
        },
    )
    parser = SingleAppDepParser(str(tmp_path))
    assert parser.app_files("a", True) == ["a/main.k", "b/b.k"]
    assert parser.app_pkgs("a", True) == ["a", "b"]