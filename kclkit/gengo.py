"""Generating Go struct definitions from schema types."""

from dataclasses import dataclass

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

GO_ANY_TYPE = "interface{}"

_GO_BASIC = {
    TYP_STR: "string",
    TYP_INT: "int",
    TYP_FLOAT: "float64",
    TYP_BOOL: "bool",
}

_TAG_BASIC = {
    TYP_STR: "str",
    TYP_INT: "int",
    TYP_FLOAT: "float",
    TYP_BOOL: "bool",
    TYP_ANY: "any",
}


@dataclass
class GenGoOptions:
    """Options of the Go generator."""

    package: str = ""
    any_type: str = GO_ANY_TYPE
    use_value: bool = False


class GoGenerator:
    """Turns schema types into Go structs tagged with their KCL names and types."""

    def __init__(self, opts: GenGoOptions | None = None) -> None:
        self.opts = opts if opts is not None else GenGoOptions()

    def gen_from_types(self, types: list[KclType]) -> str:
        """Return the structs of the schema types in types; other kinds are skipped."""
        return "".join(self.gen_schema(t) for t in types if t.type == TYP_SCHEMA)

    def gen_schema(self, typ: KclType) -> str:
        """Return one schema type as a Go struct."""
        if typ.type != TYP_SCHEMA:
            raise ValueError(f"not a schema type: {typ.type!r}")

        names = sorted_field_names(typ.properties)
        defines = []
        docs = []
        for name in names:
            field_type = typ.properties[name]
            tag = f'kcl:"name={name},type={self.field_tag(field_type)}"'
            defines.append(f"{name} {self.type_name(field_type)} `{tag}`")
            docs.append(f"// kcl-type: {kcl_type_name(field_type)}")
        width = max((len(d) for d in defines), default=0)

        parts = ["\n", schema_doc_comment(typ), f"type {typ.schema_name} struct {{\n"]
        parts.extend(f"    {d:<{width}} {doc}\n" for d, doc in zip(defines, docs))
        parts.append("}\n")
        return "".join(parts)

    def type_name(self, typ: KclType) -> str:
        """Return the Go type for typ."""
        kind = typ.type
        if kind == TYP_SCHEMA:
            return typ.schema_name if self.opts.use_value else "*" + typ.schema_name
        if kind == TYP_DICT:
            return f"map[{self.type_name(typ.key)}]{self.type_name(typ.item)}"
        if kind == TYP_LIST:
            return f"[]{self.type_name(typ.item)}"
        if kind in _GO_BASIC:
            return _GO_BASIC[kind]
        if kind == TYP_ANY:
            return self.opts.any_type
        if kind == TYP_UNION:
            names = {self.type_name(t) for t in typ.union_types}
            if len(names) == 1:
                return names.pop()
            return self.opts.any_type
        if kind == TYP_NUMBER_MULTIPLIER:
            return "int"
        is_lit, basic, _ = lit_type(kind)
        if is_lit:
            return _GO_BASIC[basic]
        raise UnknownTypeError(typ)

    def field_tag(self, typ: KclType) -> str:
        """Return the KCL type text placed in the struct tag."""
        kind = typ.type
        if kind == TYP_SCHEMA:
            return typ.schema_name
        if kind == TYP_DICT:
            return f"{{{self.field_tag(typ.key)}:{self.field_tag(typ.item)}}}"
        if kind == TYP_LIST:
            return f"[{self.field_tag(typ.item)}]"
        if kind in _TAG_BASIC:
            return _TAG_BASIC[kind]
        if kind == TYP_UNION:
            return "|".join(t.type for t in typ.union_types)
        if kind == TYP_NUMBER_MULTIPLIER:
            return "units.NumberMultiplier"
        raise UnknownTypeError(typ)


def gen_go(types: list[KclType], opts: GenGoOptions | None = None) -> str:
    """Return Go structs for the schema types in types."""
    return GoGenerator(opts).gen_from_types(types)