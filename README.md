# kclkit

Helpers for working with KCL projects from Python:

- **Import parsing** (`kclkit.imports`): read the import statements of a `.k`
  file, turn relative and absolute import paths into paths from the program
  root, and list the KCL files a package or module path stands for.
- **Dependency scanning** (`kclkit.dep_parser`, `kclkit.single_app`): find the
  applications under a root, the packages they import and the files they are
  built from, and which applications a set of changed files touches.
- **Package location** (`kclkit.pkg_info`): find the directory holding
  `kcl.mod` above a working directory.
- **Code generation** (`kclkit.gengo`, `kclkit.genpb`): turn schema types,
  described by `KclType`, into Go structs or a proto3 file.
- **Go struct reading** (`kclkit.gotypes`): read the type declarations and
  struct fields, tags and comments out of Go source.
- **Utilities**: download data (`kclkit.download`), unpack `.tar.gz` and `.zip`
  archives and zip a directory (`kclkit.archives`), and check files and MD5
  digests (`kclkit.files`).

## Installation

```
pip install kclkit
```

## Parsing imports

```python
from kclkit.imports import parse_import, fix_import_path, list_k_files

parse_import("import base.frontend\nimport base.api.core.v1 as core_v1\n")
# ['base.api.core.v1', 'base.frontend']

fix_import_path("main.k", "base.b")      # 'base/b'
fix_import_path("base/b.k", ".a")        # 'base/a'
fix_import_path("base/a.k", "..frontend")  # 'frontend'

list_k_files("demo", "base")             # ['base/a.k', 'base/b.k']
```

Only the leading import statements of a file are read; comments and string
lines before them are skipped. Files named `_xxx.k` or `xxx_test.k` are left
out of package listings (`should_ignore`), and standard system modules and
`kcl_plugin` packages are recognised by `is_builtin_pkg` and `is_plugin_pkg`.

## Scanning dependencies

`DepParser` walks a whole root, finds every application (a directory with a
`main.k` or a `kcl.yaml`) and records what each package imports:

```python
from kclkit.dep_parser import DepParser, Option

parser = DepParser("repo", Option())
if parser.error is not None:
    print("scan stopped:", parser.error)

parser.app_files("apps/web", True)   # files of the app and all it imports
parser.app_pkgs("apps/web", True)    # every package it imports, transitively
touched, untouched = parser.touched_apps("base/server/server.k")
print(parser.import_map_json())
```

A `kcl.yaml` whose `kcl_cli_configs.file` lists files names the files of its
package explicitly; entries may start with `${KCL_MOD}` to be taken from the
root. `Option` sets other names for `kcl.yaml` and `project.yaml`.

`SingleAppDepParser` scans one application at a time and raises
`DepParserError` when a package has no KCL files:

```python
from kclkit.single_app import SingleAppDepParser

files = SingleAppDepParser("repo").app_files("app0", True)
```

`find_pkg_info` returns the package root holding `kcl.mod` and the path of the
working directory inside it, both slash-separated:

```python
from kclkit.pkg_info import find_pkg_info

root, pkgpath = find_pkg_info("repo/sub/app")
```

## Generating code

The generators take schema types described by `KclType`:

```python
from kclkit.kcltypes import KclType
from kclkit.gengo import gen_go
from kclkit.genpb import gen_proto

person = KclType.from_dict({
    "type": "schema",
    "schema_name": "Person",
    "schema_doc": "Person Example",
    "properties": {
        "name": {"type": "str", "line": 1},
        "age": {"type": "int", "line": 2},
    },
})

print(gen_go([person]))
print(gen_proto("#kclvm/genpb: option go_package = gen/hello\n"
                "#kclvm/genpb: option pb_package = gen.hello\n", [person]))
```

Fields come out in the order of their `line`. `GenGoOptions` chooses the type
used for `any` and whether schema fields are pointers. `ProtoOptions` sets the
package names; those left empty are read from `#kclvm/genpb:` comments in the
code, and a `ValueError` is raised if either is still missing.

## Reading Go structs

```python
from kclkit.gotypes import parse_go_source

for struct in parse_go_source("types.go"):
    print(struct.name, struct.struct_comment)
    for f in struct.fields:
        print(" ", f.field_name, f.field_type, f.field_tag)
```

`src` may be given as bytes, a string or a readable object instead of reading
the file.

## What the package does not do

- It does not compile, run, lint or format KCL code, and does not work out
  schema types from KCL source: `KclType` values must be supplied by the
  caller.
- It has no upstream/downstream file listing over a set of files, and no
  one-call function for the dependency files of an application; use
  `DepParser` or `SingleAppDepParser` directly.
- It reads Go structs but does not write KCL schemas from them.
- It has no command-line program.

## Errors

Failures are raised as exceptions: `PkgInfoError`, `DepParserError`,
`DownloadError`, `ArchiveError`, `GoSyntaxError` and `UnknownTypeError`.