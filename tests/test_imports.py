import pytest

from kclkit.imports import (
    fix_import_path,
    fix_path,
    is_builtin_pkg,
    is_plugin_pkg,
    list_k_files,
    parse_import,
    should_ignore,
)


PARSE_IMPORT_CASES = [
    (
        1,
        '''
	"""abc"""
	import base.pkg.kusion_kubernetes.apimachinery.apis
	''',
    ),
    (
        1,
        """
	'''abc'''
	import base.pkg.kusion_kubernetes.apimachinery.apis
	""",
    ),
    (
        1,
        '''
	"""
	This is the mutating_webhook_configuration module in kusion_kubernetes.api.admissionregistration.v1beta1 package.
	This file was generated by the KCL auto-gen tool. DO NOT EDIT.
	Editing this file might prove futile when you re-run the KCL auto-gen generate command.
	"""
	import base.pkg.kusion_kubernetes.apimachinery.apis
	''',
    ),
    (
        2,
        '''
		"""
		This file was generated by the KCL auto-gen tool. DO NOT EDIT.
		Editing this file might prove futile when you re-run the KCL auto-gen generate command.
		"""
		import base.pkg.kusion_kubernetes.apimachinery.apis
		import base.pkg.kusion_kubernetes.api.core.v1
		''',
    ),
    (
        1,
        """
		'''
		This file was generated by the KCL auto-gen tool. DO NOT EDIT.
		Editing this file might prove futile when you re-run the KCL auto-gen generate command.
		\"\"\"
		import base.pkg.kusion_kubernetes.apimachinery.apis
		import base.pkg.kusion_kubernetes.api.core.v1
		'''
		import abc
		""",
    ),
    (
        1,
        """
		'aaa'
		import kcl_plugin.hello
		a = 2
		""",
    ),
    (
        1,
        """
		"aaa"
		import kcl_plugin.hello
		a = 2
		""",
    ),
]


@pytest.mark.parametrize("count, code", PARSE_IMPORT_CASES)
def test_parse_import_counts(count, code):
    assert len(parse_import(code)) == count


def test_parse_import_values_are_sorted_and_distinct():
    code = "import b.c as bc\nimport a\nimport a  # again\nx = 1\nimport late\n"
    assert parse_import(code) == ["a", "b.c"]


def test_parse_import_strips_quotes():
    assert parse_import('import "base.x"\n') == ["base.x"]


def test_parse_import_skips_long_string_content():
    assert parse_import("'''\nimport hidden\n'''\nimport shown\n") == ["shown"]


@pytest.mark.parametrize(
    "file_path, import_path, expected",
    [
        ("main.k", "base.b", "base/b"),
        ("base/b.k", ".a", "base/a"),
        ("base/a.k", "..frontend", "frontend"),
        ("base/a.k", "...frontend", "frontend"),
    ],
)
def test_fix_import_path(file_path, import_path, expected):
    assert fix_import_path(file_path, import_path) == expected


@pytest.mark.parametrize(
    "pkgpath, expected",
    [("math", True), ("units", True), ("manifests", True), ("mathx", False), ("base/math", False)],
)
def test_is_builtin_pkg(pkgpath, expected):
    assert is_builtin_pkg(pkgpath) is expected


@pytest.mark.parametrize(
    "pkgpath, expected",
    [("kcl_plugin/hello", True), ("kcl_plugin.hello", True), ("kcl_plugin", False), ("base", False)],
)
def test_is_plugin_pkg(pkgpath, expected):
    assert is_plugin_pkg(pkgpath) is expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("main.k", False),
        ("_private.k", True),
        ("main_test.k", True),
        ("README.md", True),
        ("dir", True),
    ],
)
def test_should_ignore(name, expected):
    assert should_ignore(name) is expected


@pytest.fixture
def complicate(tmp_path):
    files = {
        "base/frontend/container/container.k": "schema Container:\n    name: str\n",
        "base/frontend/container/container_port.k": "schema Port:\n    port: int\n",
        "base/frontend/container/probe/probe.k": "",
        "base/frontend/container/probe/exec.k": "",
        "base/frontend/container/probe/http.k": "",
        "base/frontend/container/probe/tcp.k": "",
        "base/frontend/container/probe/probe_test.k": "",
        "base/frontend/container/probe/_internal.k": "",
        "base/frontend/container/probe/README.md": "",
    }
    for rel, content in files.items():
        target = tmp_path.joinpath(*rel.split("/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return str(tmp_path)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("base/frontend/container/container.k", "base/frontend/container/container.k"),
        ("base/frontend/container/container", "base/frontend/container/container.k"),
        ("base/frontend/container", "base/frontend/container"),
        ("base/frontend/container/invalid", "base/frontend/container/invalid"),
    ],
)
def test_fix_path(complicate, path, expected):
    assert fix_path(complicate, path) == expected


@pytest.mark.parametrize(
    "path, expected",
    [
        ("base/frontend/container/container.k", ["base/frontend/container/container.k"]),
        ("base/frontend/container/container", ["base/frontend/container/container.k"]),
        (
            "base/frontend/container",
            ["base/frontend/container/container.k", "base/frontend/container/container_port.k"],
        ),
        (
            "base/frontend/container/probe",
            [
                "base/frontend/container/probe/probe.k",
                "base/frontend/container/probe/exec.k",
                "base/frontend/container/probe/http.k",
                "base/frontend/container/probe/tcp.k",
            ],
        ),
    ],
)
def test_list_k_files(complicate, path, expected):
    assert sorted(list_k_files(complicate, path)) == sorted(expected)


def test_list_k_files_missing_path_is_empty(complicate):
    assert list_k_files(complicate, "base/frontend/nowhere") == []