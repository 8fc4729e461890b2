"""Reading struct type declarations out of Go source code."""

from dataclasses import dataclass, field
from typing import Any, NamedTuple

from kclkit.kcltypes import read_source

_KEYWORDS = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
    }
)
_SEMI_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_TYPE_KEYWORDS = frozenset({"map", "chan", "func", "struct", "interface"})
_OPERATORS = (
    "<<=", ">>=", "&^=", "...",
    "&&", "||", "<-", "++", "--", "==", "!=", "<=", ">=", ":=", "+=", "-=",
    "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "&^",
    "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!", "(", ")",
    "[", "]", "{", "}", ",", ";", ".", ":", "~",
)
_OPENERS = {"(": ")", "[": "]", "{": "}"}


class GoSyntaxError(ValueError):
    """Raised when Go source cannot be read."""


@dataclass
class GoStructField:
    """One field of a struct: names, type text, raw tag and trailing comment."""

    field_name: str = ""
    field_type: str = ""
    field_tag: str = ""
    field_tag_kind: str = ""
    field_comment: str = ""


@dataclass
class GoStruct:
    """A type declaration with its struct fields and doc comment."""

    name: str = ""
    fields: list[GoStructField] = field(default_factory=list)
    field_num: int = 0
    struct_comment: str = ""


class _Token(NamedTuple):
    kind: str  # ident, number, string, char, op, semi, eof
    value: str
    line: int


@dataclass
class _Comment:
    text: str
    line: int
    end_line: int
    trailing: bool


def _lex(filename: str, src: str) -> tuple[list[_Token], list[_Comment]]:
    tokens: list[_Token] = []
    comments: list[_Comment] = []
    i, line, n = 0, 1, len(src)

    def fail(msg: str) -> GoSyntaxError:
        return GoSyntaxError(f"{filename}:{line}: {msg}")

    def needs_semi() -> bool:
        if not tokens:
            return False
        last = tokens[-1]
        if last.kind == "ident":
            return last.value not in _KEYWORDS or last.value in _SEMI_KEYWORDS
        if last.kind in ("number", "string", "char"):
            return True
        return last.kind == "op" and last.value in (")", "]", "}", "++", "--")

    def trailing() -> bool:
        return bool(tokens) and tokens[-1].line == line and tokens[-1].kind != "semi"

    while i < n:
        ch = src[i]
        if ch == "\n":
            if needs_semi():
                tokens.append(_Token("semi", "\n", line))
            line += 1
            i += 1
        elif ch in " \t\r":
            i += 1
        elif src.startswith("//", i):
            end = src.find("\n", i)
            end = n if end < 0 else end
            comments.append(_Comment(src[i:end], line, line, trailing()))
            i = end
        elif src.startswith("/*", i):
            end = src.find("*/", i + 2)
            if end < 0:
                raise fail("comment not terminated")
            text = src[i:end + 2]
            newlines = text.count("\n")
            comments.append(_Comment(text, line, line + newlines, trailing()))
            if newlines and needs_semi():
                tokens.append(_Token("semi", "\n", line))
            line += newlines
            i = end + 2
        elif ch.isalpha() or ch == "_":
            j = i
            while j < n and (src[j].isalnum() or src[j] == "_"):
                j += 1
            tokens.append(_Token("ident", src[i:j], line))
            i = j
        elif ch.isdigit() or (ch == "." and i + 1 < n and src[i + 1].isdigit()):
            j = i + 1
            while j < n and (
                src[j].isalnum() or src[j] in "_."
                or (src[j] in "+-" and src[j - 1] in "eEpP")
            ):
                j += 1
            tokens.append(_Token("number", src[i:j], line))
            i = j
        elif ch in "\"'":
            j = i + 1
            while j < n and src[j] != ch:
                if src[j] == "\n":
                    raise fail("string literal not terminated")
                j += 2 if src[j] == "\\" else 1
            if j >= n:
                raise fail("string literal not terminated")
            tokens.append(_Token("string" if ch == '"' else "char", src[i:j + 1], line))
            i = j + 1
        elif ch == "`":
            end = src.find("`", i + 1)
            if end < 0:
                raise fail("raw string literal not terminated")
            tokens.append(_Token("string", src[i:end + 1], line))
            line += src.count("\n", i, end)
            i = end + 1
        else:
            op = next((o for o in _OPERATORS if src.startswith(o, i)), None)
            if op is None:
                raise fail(f"invalid character {ch!r}")
            tokens.append(_Token("semi", ";", line) if op == ";" else _Token("op", op, line))
            i += len(op)
    if needs_semi():
        tokens.append(_Token("semi", "\n", line))
    return tokens, comments


def _comment_text(group: list[_Comment]) -> str:
    lines: list[str] = []
    for c in group:
        text = c.text
        if text.startswith("//"):
            text = text[2:]
            if text.startswith(" "):
                text = text[1:]
        else:
            text = text[2:-2]
        lines.extend(part.rstrip() for part in text.split("\n"))
    collapsed: list[str] = []
    for ln in lines:
        if ln or (collapsed and collapsed[-1]):
            collapsed.append(ln)
    while collapsed and not collapsed[-1]:
        collapsed.pop()
    return "\n".join(collapsed) + "\n" if collapsed else ""


class _Parser:
    def __init__(self, filename: str, tokens: list[_Token], comments: list[_Comment]) -> None:
        self.filename = filename
        self.tokens = tokens
        self.pos = 0
        self.prev: _Token | None = None
        self.comments = comments
        self.groups: list[list[_Comment]] = []
        for c in comments:
            if c.trailing:
                continue
            if self.groups and c.line <= self.groups[-1][-1].end_line + 1:
                self.groups[-1].append(c)
            else:
                self.groups.append([c])

    def peek(self, offset: int = 0) -> _Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        last = self.tokens[-1].line if self.tokens else 1
        return _Token("eof", "", last)

    def next(self) -> _Token:
        tok = self.peek()
        if tok.kind != "eof":
            self.pos += 1
            self.prev = tok
        return tok

    def error(self, msg: str, tok: _Token) -> GoSyntaxError:
        return GoSyntaxError(f"{self.filename}:{tok.line}: {msg}")

    def is_op(self, tok: _Token, value: str) -> bool:
        return tok.kind == "op" and tok.value == value

    def expect_op(self, value: str) -> _Token:
        tok = self.next()
        if not self.is_op(tok, value):
            raise self.error(f"expected {value!r}, found {tok.value!r}", tok)
        return tok

    def expect_ident(self) -> _Token:
        tok = self.next()
        if tok.kind != "ident" or tok.value in _KEYWORDS:
            raise self.error(f"expected identifier, found {tok.value!r}", tok)
        return tok

    def skip_balanced(self, opener: str) -> None:
        self.expect_op(opener)
        stack = [_OPENERS[opener]]
        while stack:
            tok = self.next()
            if tok.kind == "eof":
                raise self.error(f"expected {stack[-1]!r}", tok)
            if tok.kind == "op" and tok.value in _OPENERS:
                stack.append(_OPENERS[tok.value])
            elif tok.kind == "op" and tok.value in (")", "]", "}"):
                if tok.value != stack[-1]:
                    raise self.error(f"unexpected {tok.value!r}", tok)
                stack.pop()

    def parse_file(self) -> list[GoStruct]:
        tok = self.next()
        if tok.kind != "ident" or tok.value != "package":
            raise self.error("expected 'package'", tok)
        self.expect_ident()
        self.end_decl()
        structs: list[GoStruct] = []
        while self.peek().kind != "eof":
            tok = self.peek()
            if tok.kind == "semi":
                self.next()
            elif tok.kind == "ident" and tok.value == "type":
                structs.append(self.parse_type_decl())
            else:
                self.skip_decl()
        return structs

    def end_decl(self) -> None:
        tok = self.peek()
        if tok.kind == "semi":
            self.next()
        elif tok.kind != "eof":
            raise self.error(f"expected ';', found {tok.value!r}", tok)

    def skip_decl(self) -> None:
        depth = 0
        while True:
            tok = self.next()
            if tok.kind == "eof":
                if depth:
                    raise self.error("unexpected end of file", tok)
                return
            if tok.kind == "op" and tok.value in _OPENERS:
                depth += 1
            elif tok.kind == "op" and tok.value in (")", "]", "}"):
                depth -= 1
            elif tok.kind == "semi" and depth == 0:
                return

    def doc_for(self, line: int) -> str:
        for group in self.groups:
            if group[-1].end_line == line - 1:
                return _comment_text(group)
        return ""

    def parse_type_decl(self) -> GoStruct:
        type_tok = self.next()
        result = GoStruct()
        doc = self.doc_for(type_tok.line)
        if doc:
            result.struct_comment = doc.rstrip("\n")
        if self.is_op(self.peek(), "("):
            self.next()
            while True:
                while self.peek().kind == "semi":
                    self.next()
                if self.is_op(self.peek(), ")"):
                    self.next()
                    break
                self.parse_spec(result)
                if self.peek().kind == "semi":
                    self.next()
                elif not self.is_op(self.peek(), ")"):
                    raise self.error("expected ';' or ')'", self.peek())
        else:
            self.parse_spec(result)
        self.end_decl()
        return result

    def parse_spec(self, result: GoStruct) -> None:
        result.name = self.expect_ident().value
        if self.is_op(self.peek(), "="):
            self.next()
        tok = self.peek()
        if tok.kind == "ident" and tok.value == "struct":
            self.next()
            result.fields, result.field_num = self.parse_struct_body()
        else:
            self.parse_type()
            result.fields = []

    def parse_struct_body(self) -> tuple[list[GoStructField], int]:
        self.expect_op("{")
        fields: list[GoStructField] = []
        count = 0
        while True:
            while self.peek().kind == "semi":
                self.next()
            if self.is_op(self.peek(), "}"):
                self.next()
                return fields, count
            found, names = self.parse_field()
            fields.append(found)
            count += max(names, 1)
            if self.peek().kind == "semi":
                self.next()
            elif not self.is_op(self.peek(), "}"):
                raise self.error("expected ';' or '}'", self.peek())

    def parse_field(self) -> tuple[GoStructField, int]:
        t0, t1 = self.peek(), self.peek(1)
        names: list[str] = []
        if t0.kind == "ident" and t0.value not in _KEYWORDS and self.is_op(t1, ","):
            names.append(self.expect_ident().value)
            while self.is_op(self.peek(), ","):
                self.next()
                names.append(self.expect_ident().value)
        elif t0.kind == "ident" and (
            self.is_op(t1, ".") or self.is_op(t1, "}") or t1.kind in ("semi", "string")
        ):
            pass
        elif self.is_op(t0, "*"):
            pass
        else:
            names.append(self.expect_ident().value)

        result = GoStructField()
        if len(names) == 1:
            result.field_name = names[0]
        elif names:
            result.field_name = "".join(name + "," for name in names)
        result.field_type = self.parse_type()
        if self.peek().kind == "string":
            tag = self.next()
            result.field_tag = tag.value
            result.field_tag_kind = "STRING"
        last_line = self.prev.line if self.prev else 0
        trailing = [c for c in self.comments if c.trailing and c.line == last_line]
        if trailing:
            result.field_comment = _comment_text(trailing)
        return result, len(names)

    def starts_type(self, tok: _Token) -> bool:
        if tok.kind == "ident":
            return tok.value not in _KEYWORDS or tok.value in _TYPE_KEYWORDS
        return tok.kind == "op" and tok.value in ("*", "[", "(", "<-")

    def parse_type(self) -> str:
        tok = self.next()
        if tok.kind == "ident":
            value = tok.value
            if value == "map":
                self.expect_op("[")
                key = self.parse_type()
                self.expect_op("]")
                return f"map[{key}]{self.parse_type()}"
            if value == "interface":
                self.skip_balanced("{")
                return "interface{}"
            if value == "struct":
                self.skip_balanced("{")
                return ""
            if value == "func":
                self.skip_balanced("(")
                if self.is_op(self.peek(), "("):
                    self.skip_balanced("(")
                elif self.starts_type(self.peek()):
                    self.parse_type()
                return ""
            if value == "chan":
                if self.is_op(self.peek(), "<-"):
                    self.next()
                self.parse_type()
                return ""
            if value in _KEYWORDS:
                raise self.error(f"unexpected {value!r} in type", tok)
            if self.is_op(self.peek(), "."):
                self.next()
                self.expect_ident()
                if self.is_op(self.peek(), "["):
                    self.skip_balanced("[")
                return ""
            if self.is_op(self.peek(), "["):
                self.skip_balanced("[")
                return ""
            return value
        if self.is_op(tok, "*"):
            return "*" + self.parse_type()
        if self.is_op(tok, "["):
            depth = 1
            while depth:
                inner = self.next()
                if inner.kind == "eof":
                    raise self.error("expected ']'", inner)
                if self.is_op(inner, "["):
                    depth += 1
                elif self.is_op(inner, "]"):
                    depth -= 1
            return "[]" + self.parse_type()
        if self.is_op(tok, "<-"):
            chan = self.next()
            if chan.kind != "ident" or chan.value != "chan":
                raise self.error("expected 'chan'", chan)
            self.parse_type()
            return ""
        if self.is_op(tok, "("):
            self.parse_type()
            self.expect_op(")")
            return ""
        raise self.error(f"expected type, found {tok.value!r}", tok)


def parse_go_source(filename: str, src: Any = None) -> list[GoStruct]:
    """Return one GoStruct per type declaration in the source, in order.

    src may be bytes, str or a readable object; when it is None the file is read.
    """
    data = read_source(filename, src)
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise GoSyntaxError(f"{filename}: invalid UTF-8 encoding") from err
    tokens, comments = _lex(filename, text)
    return _Parser(filename, tokens, comments).parse_file()