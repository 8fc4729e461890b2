"""Schema type descriptions and the helpers shared by the code generators."""

import io
import json
from dataclasses import dataclass, field
from typing import Any

TYP_SCHEMA = "schema"
TYP_DICT = "dict"
TYP_LIST = "list"
TYP_STR = "str"
TYP_INT = "int"
TYP_FLOAT = "float"
TYP_BOOL = "bool"
TYP_ANY = "any"
TYP_UNION = "union"
TYP_NUMBER_MULTIPLIER = "number_multiplier"

_LIT_PREFIXES = (TYP_BOOL, TYP_INT, TYP_FLOAT, TYP_STR)

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


class UnknownTypeError(ValueError):
    """Raised when a type description has a kind no generator knows."""

    def __init__(self, typ: "KclType") -> None:
        super().__init__(f"ERR: unknown '{typ.type}', json = {typ.to_json()}")
        self.typ = typ


@dataclass
class KclType:
    """Description of a schema attribute type as reported by the type checker."""

    type: str
    schema_name: str = ""
    schema_doc: str = ""
    properties: dict[str, "KclType"] = field(default_factory=dict)
    key: "KclType | None" = None
    item: "KclType | None" = None
    union_types: list["KclType"] = field(default_factory=list)
    line: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KclType":
        """Build a type from a mapping; camelCase keys are accepted as well."""

        def pick(*names: str, default: Any = None) -> Any:
            for name in names:
                if name in data and data[name] is not None:
                    return data[name]
            return default

        key = pick("key")
        item = pick("item")
        return cls(
            type=pick("type", default=""),
            schema_name=pick("schema_name", "schemaName", default=""),
            schema_doc=pick("schema_doc", "schemaDoc", default=""),
            properties={
                name: cls.from_dict(value)
                for name, value in pick("properties", default={}).items()
            },
            key=cls.from_dict(key) if key is not None else None,
            item=cls.from_dict(item) if item is not None else None,
            union_types=[cls.from_dict(u) for u in pick("union_types", "unionTypes", default=[])],
            line=int(pick("line", default=0)),
        )

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.schema_name:
            result["schema_name"] = self.schema_name
        if self.schema_doc:
            result["schema_doc"] = self.schema_doc
        if self.properties:
            result["properties"] = {k: v._to_dict() for k, v in self.properties.items()}
        if self.key is not None:
            result["key"] = self.key._to_dict()
        if self.item is not None:
            result["item"] = self.item._to_dict()
        if self.union_types:
            result["union_types"] = [u._to_dict() for u in self.union_types]
        if self.line:
            result["line"] = self.line
        return result

    def to_json(self) -> str:
        """Return the type as indented JSON."""
        return json.dumps(self._to_dict(), indent=4)


def _go_quote(text: str) -> str:
    out = ['"']
    for ch in text:
        if ch in ('"', "\\"):
            out.append("\\" + ch)
        elif ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif ord(ch) < 0x80:
            out.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    out.append('"')
    return "".join(out)


def lit_type(type_text: str) -> tuple[bool, str, str]:
    """Split a literal type such as ``str(War)`` into (True, basic type, literal text).

    String literals come back quoted. A non-literal type gives (False, "", "").
    """
    if not type_text.endswith(")"):
        return False, "", ""
    i = type_text.find("(") + 1
    j = type_text.rfind(")")
    for basic in _LIT_PREFIXES:
        if type_text.startswith(basic + "("):
            value = type_text[i:j]
            if basic == TYP_STR:
                value = _go_quote(value)
            return True, basic, value
    return False, "", ""


def kcl_type_name(typ: KclType) -> str:
    """Return the type as it is written in KCL source."""
    is_lit, _, lit_value = lit_type(typ.type)
    if is_lit:
        return lit_value

    kind = typ.type
    if kind == TYP_SCHEMA:
        return typ.schema_name
    if kind == TYP_DICT:
        return f"{{{kcl_type_name(typ.key)}:{kcl_type_name(typ.item)}}}"
    if kind == TYP_LIST:
        return f"[{kcl_type_name(typ.item)}]"
    if kind in (TYP_STR, TYP_INT, TYP_FLOAT, TYP_BOOL, TYP_ANY):
        return kind
    if kind == TYP_UNION:
        return "|".join(kcl_type_name(t) for t in typ.union_types)
    if kind == TYP_NUMBER_MULTIPLIER:
        return "units.NumberMultiplier"
    raise UnknownTypeError(typ)


def schema_doc_comment(typ: KclType) -> str:
    """Return the schema's doc string as ``//`` comment lines, or an empty string."""
    doc = typ.schema_doc.strip()
    if not doc:
        return ""
    return "".join(f"// {line}\n" for line in doc.split("\n"))


def sorted_field_names(properties: dict[str, KclType]) -> list[str]:
    """Return the property names ordered by the line they are declared on."""
    return [name for name, _ in sorted(properties.items(), key=lambda kv: kv[1].line)]


def read_source(filename: str, src: Any = None) -> bytes:
    """Return source bytes from src (bytes, str or a readable object), or from filename."""
    if src is None:
        with open(filename, "rb") as f:
            return f.read()
    if isinstance(src, (bytes, bytearray)):
        return bytes(src)
    if isinstance(src, str):
        return src.encode("utf-8")
    if isinstance(src, (io.IOBase,)) or hasattr(src, "read"):
        data = src.read()
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)
    raise TypeError(f"unsupported src type: {type(src).__name__}")