"""Generating protobuf messages from schema types."""

from dataclasses import dataclass, replace

from kclkit.kcltypes import (
    TYP_ANY,
    TYP_BOOL,
    TYP_DICT,
    TYP_FLOAT,
    TYP_INT,
    TYP_LIST,
    TYP_NUMBER_MULTIPLIER,
    TYP_SCHEMA,
    TYP_STR,
    TYP_UNION,
    KclType,
    UnknownTypeError,
    kcl_type_name,
    lit_type,
    schema_doc_comment,
    sorted_field_names,
)

PB_TYPE_ANY = "google.protobuf.Any"

_OPTION_MARK = "#kclvm/genpb:"
_GO_PACKAGE_PREFIX = "#kclvm/genpb: option go_package ="
_PB_PACKAGE_PREFIX = "#kclvm/genpb: option pb_package ="

_PB_BASIC = {
    TYP_STR: "string",
    TYP_INT: "int64",
    TYP_FLOAT: "double",
    TYP_BOOL: "bool",
}


@dataclass
class ProtoOptions:
    """Package names of the generated file; empty ones are read from the source."""

    go_package: str = ""
    pb_package: str = ""


def _option(code: str, prefix: str) -> str:
    if _OPTION_MARK not in code:
        return ""
    for line in code.split("\n"):
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return ""


def option_go_package(code: str) -> str:
    """Return the go_package named by a ``#kclvm/genpb:`` comment in code."""
    return _option(code, _GO_PACKAGE_PREFIX)


def option_pb_package(code: str) -> str:
    """Return the pb_package named by a ``#kclvm/genpb:`` comment in code."""
    return _option(code, _PB_PACKAGE_PREFIX)


def pb_type_name(typ: KclType) -> str:
    """Return the protobuf type for typ."""
    kind = typ.type
    if kind == TYP_SCHEMA:
        return typ.schema_name
    if kind == TYP_DICT:
        return f"map<{pb_type_name(typ.key)}, {pb_type_name(typ.item)}>"
    if kind == TYP_LIST:
        return f"repeated {pb_type_name(typ.item)}"
    if kind in _PB_BASIC:
        return _PB_BASIC[kind]
    if kind == TYP_ANY:
        return PB_TYPE_ANY
    if kind == TYP_UNION:
        names = {pb_type_name(t) for t in typ.union_types}
        if len(names) == 1:
            return names.pop()
        return PB_TYPE_ANY
    if kind == TYP_NUMBER_MULTIPLIER:
        return "int64"
    is_lit, basic, _ = lit_type(kind)
    if is_lit:
        return _PB_BASIC[basic]
    raise UnknownTypeError(typ)


class ProtoGenerator:
    """Turns schema types into a proto3 file."""

    def __init__(self, opts: ProtoOptions | None = None) -> None:
        self.opts = replace(opts) if opts is not None else ProtoOptions()
        self._need_any = False

    def gen_proto(self, code: str | bytes, types: list[KclType]) -> str:
        """Return the proto3 file for types; code supplies package options not set."""
        if isinstance(code, (bytes, bytearray)):
            code = bytes(code).decode("utf-8")
        if not self.opts.go_package:
            self.opts.go_package = option_go_package(code)
        if not self.opts.pb_package:
            self.opts.pb_package = option_pb_package(code)
        if not self.opts.pb_package:
            raise ValueError("opt.PbPackage missing")
        if not self.opts.go_package:
            raise ValueError("opt.GoPackage missing")

        self._need_any = False
        body = self._messages(types)

        parts = [
            'syntax = "proto3";\n\n',
            f"package {self.opts.pb_package};\n\n",
            f'option go_package = "{self.opts.go_package}";\n',
        ]
        if self._need_any:
            parts.append('\nimport "google/protobuf/any.proto";\n')
        parts.append(body)
        return "".join(parts)

    def _messages(self, types: list[KclType]) -> str:
        out = []
        for typ in types:
            if typ.type == TYP_SCHEMA:
                out.append(self._schema(typ))
            else:
                out.append(f"ERR: unknown '{typ.type}', json = {typ.to_json()}\n")
        return "".join(out)

    def _schema(self, typ: KclType) -> str:
        names = sorted_field_names(typ.properties)
        defines = []
        docs = []
        for number, name in enumerate(names, start=1):
            field_type = typ.properties[name]
            pb_type = pb_type_name(field_type)
            if pb_type == PB_TYPE_ANY:
                self._need_any = True
            defines.append(f"{pb_type} {name} = {number};")
            docs.append(f"// kcl-type: {kcl_type_name(field_type)}")
        width = max((len(d) for d in defines), default=0)

        parts = ["\n", schema_doc_comment(typ), f"message {typ.schema_name} {{\n"]
        parts.extend(f"    {d:<{width}} {doc}\n" for d, doc in zip(defines, docs))
        parts.append("}\n")
        return "".join(parts)


def gen_proto(code: str | bytes, types: list[KclType], opts: ProtoOptions | None = None) -> str:
    """Return the proto3 file for the schema types in types."""
    return ProtoGenerator(opts).gen_proto(code, types)