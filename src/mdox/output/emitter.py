"""Emitter: render a parsed classdef as a doxygen-readable C++-like unit.

The emitter only reads the model.  Declarations come out in source order,
each preceded by its doc block; accessor overrides follow their section
inside ``#if 0`` guards so doxygen never lists them as members.
"""

from __future__ import annotations

import bisect
import re

from mdox.config import FilterConfig
from mdox.model import (
    ABSTRACT,
    DECLARED,
    EVENTS,
    METHOD,
    PROPERTY,
    AccessorOverride,
    AttributeSet,
    ClassDeclaration,
    DocBlock,
    Event,
    LooseComment,
    Method,
    Property,
    Section,
)
from mdox.parse.declarations import initializer_text
from mdox.parse.source import COMMENT, SourceUnit

BANNER = """\
/* (Autoinserted by mdox)
 * This source code has been filtered by mdox to be processed by the doxygen
 * documentation tool. It can neither be interpreted by MATLAB nor compiled
 * by a C++ compiler. Except for the comments, the function bodies of the
 * M-file are untouched, so source browsing keeps showing readable code.
 */"""

LABEL_INDENT = "  "
MEMBER_INDENT = "    "

NORET = "noret::substitute"
OUTPUT_LEAF = "mlhsInnerSubst"
OUTPUT_PAIR = "mlhsSubst"

# Rendered without the global-namespace prefix.
BUILTIN_TYPES = frozenset({
    "double", "single", "logical", "char", "string", "cell", "struct",
    "int8", "int16", "int32", "int64", "uint8", "uint16", "uint32", "uint64",
    "function_handle", "void", "bool", "int", "float",
})

_ACCESS_LABELS = ("public", "protected", "private")

_RE_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?[ij]?$")
_RE_SINGLE_QUOTED = re.compile(r"^'((?:[^']|'')*)'$")
_RE_DOUBLE_QUOTED = re.compile(r'^"((?:[^"]|"")*)"$')
_RE_CALL = re.compile(r"^([A-Za-z_][\w.]*)\((.*)\)$", re.DOTALL)


def emit(
    unit: SourceUnit,
    cls: ClassDeclaration,
    config: FilterConfig | None = None,
    group: str | None = None,
) -> str:
    return _Emitter(unit, cls, config or FilterConfig(), group).render()


class _Emitter:
    def __init__(self, unit: SourceUnit, cls: ClassDeclaration, config: FilterConfig, group: str | None):
        self.unit = unit
        self.cls = cls
        self.config = config
        self.group = group
        self.out: list[str] = []
        self.loose = sorted(cls.loose_comments, key=lambda c: c.offset)

    # ── Top level ─────────────────────────────────────────────────────

    def render(self) -> str:
        cls = self.cls
        if self.config.banner:
            self.out.append(BANNER)
            self.out.append("")
        self._flush_loose(cls.start, "")
        self._class_doc()
        self._class_header()
        for section in cls.sections:
            self._flush_loose(section.start, LABEL_INDENT)
            self._section(section)
        self._flush_loose(None, LABEL_INDENT)
        self.out.append("};")
        return "\n".join(self.out) + "\n"

    def _class_doc(self) -> None:
        doc = self.cls.doc
        extra = [f"@ingroup {self.group}"] if self.group else []
        if doc is None and not extra:
            return
        self.out.extend(render_doc(doc or DocBlock(), "", head=extra))

    def _class_header(self) -> None:
        name = self.cls.name
        supers = [qualify(s) for s in self.cls.superclasses]
        if not supers:
            self.out.append(f"class {name} {{")
            return
        self.out.append(f"class {name}")
        for idx, sup in enumerate(supers):
            lead = "  : public " if idx == 0 else "    public "
            tail = " {" if idx == len(supers) - 1 else ","
            self.out.append(f"{lead}{sup}{tail}")

    def _flush_loose(self, before: int | None, indent: str) -> None:
        while self.loose and (before is None or self.loose[0].offset < before):
            self.out.extend(render_loose(self.loose.pop(0), indent))

    # ── Sections ──────────────────────────────────────────────────────

    def _section(self, section: Section) -> None:
        self.out.append("")
        self.out.append(f"{LABEL_INDENT}{section_label(section)}")
        for decl in section.declarations:
            self._flush_loose(decl.start, MEMBER_INDENT)
            self.out.append("")
            if decl.doc is not None and not decl.doc.is_empty:
                self.out.extend(render_doc(decl.doc, MEMBER_INDENT))
            if decl.kind == PROPERTY:
                self.out.append(MEMBER_INDENT + self._property(decl, section.attributes))
            elif decl.kind == METHOD:
                self.out.append(MEMBER_INDENT + self._method(decl, decl.name.replace(".", "_")))
            else:
                self.out.append(MEMBER_INDENT + self._event(decl))
        self._flush_loose(section.end, MEMBER_INDENT)
        for override in section.accessors:
            self.out.append("")
            self.out.extend(self._accessor(override))

    def _property(self, prop: Property, attributes: AttributeSet) -> str:
        doc = prop.doc
        type_name = prop.type_name or (doc.type_name if doc else None)
        text = f"{self._type(type_name)} {prop.name}"
        if attributes.flag("Constant"):
            text = "static const " + text
        init = initializer_text(self.unit, prop)
        if init:
            text += " = " + encode_initializer(init)
        return text + ";"

    def _event(self, event: Event) -> str:
        return f"EVENT {event.name};"

    def _method(self, method: Method, name: str) -> str:
        doc = method.doc or DocBlock()
        ctor = method.name == self.cls.name
        params = list(method.params)
        if params and not ctor and not method.is_static:
            params = params[1:]
        rendered = ",".join(f"{self._type(doc.param_types.get(p))} {_param_name(p)}" for p in params)

        prefix = ""
        if method.is_static and not ctor:
            prefix = "static "
        elif method.body_kind == ABSTRACT:
            prefix = "virtual "
        signature = f"{name}({rendered})"
        if not ctor:
            signature = f"{self._returns(method, doc)} {signature}"
        text = prefix + signature

        if method.body_kind == ABSTRACT:
            return text + " = 0;"
        if method.body_kind == DECLARED or method.body_span is None:
            return text + ";"
        return f"{text} {{\n{self._body(method)}}}"

    def _returns(self, method: Method, doc: DocBlock) -> str:
        outputs = method.outputs
        if not outputs:
            return NORET
        if len(outputs) == 1 and not method.is_static and method.params and outputs[0] == method.params[0]:
            return NORET
        leaves = [
            f"{OUTPUT_LEAF}<{self._wrapped_type(doc.retval_types.get(o))},{o}>" for o in outputs
        ]
        return nest_outputs(leaves)

    def _body(self, method: Method) -> str:
        """Body text with comments turned into C comments and the leading doc removed."""
        start, end = method.body_span
        skip = method.body_doc_span
        parts: list[str] = []
        pos = start
        tokens = self.unit.tokens
        first = bisect.bisect_left(tokens, start, key=lambda t: t.start)
        for idx in range(first, len(tokens)):
            tok = tokens[idx]
            if tok.kind != COMMENT and tok.start < end:
                continue
            if tok.start >= end:
                break
            parts.append(self.unit.slice(pos, tok.start))
            if skip is None or not (skip[0] <= tok.start < skip[1]):
                parts.append(c_comment(self.unit.token_text(tok), tok.block))
            pos = tok.end
        parts.append(self.unit.slice(pos, end))
        return "".join(parts)

    def _accessor(self, override: AccessorOverride) -> list[str]:
        method = override.method
        lines = [f"#if 0 // accessor '{method.name}'"]
        if override.doc is not None and not override.doc.is_empty:
            lines.extend(render_doc(override.doc, MEMBER_INDENT))
        lines.append(MEMBER_INDENT + self._method(method, override.target))
        lines.append("#endif")
        return lines

    # ── Types ─────────────────────────────────────────────────────────

    def _type(self, type_name: str | None) -> str:
        if not type_name:
            return self.config.placeholder_type
        return qualify(type_name)

    def _wrapped_type(self, type_name: str | None) -> str:
        return qualify(type_name) if type_name else "void"


# ── Rendering helpers ─────────────────────────────────────────────────

def qualify(name: str) -> str:
    """``pkg.sub.Name`` -> ``::pkg::sub::Name``; builtin MATLAB types stay bare."""
    if name in BUILTIN_TYPES or name.startswith("::"):
        return name
    return "::" + name.replace(".", "::")


def nest_outputs(leaves: list[str]) -> str:
    """Right-nested pair wrapper: N leaves give N-1 nesting levels."""
    if len(leaves) == 1:
        return leaves[0]
    return f"{OUTPUT_PAIR}<{leaves[0]} ,{nest_outputs(leaves[1:])} >"


def section_label(section: Section) -> str:
    attributes = section.attributes
    access = None
    pair = attributes.access()
    if pair is not None:
        access = pair.get_access
    elif section.kind == EVENTS:
        listen = attributes.get("ListenAccess")
        if listen is not None and isinstance(listen.value, str):
            access = listen.value
    label = access_label(access)
    flags = attributes.true_flags()
    if flags:
        return f"{label}: /* ( {', '.join(flags)} ) */"
    return f"{label}:"


def access_label(value: str | None) -> str:
    if value is None:
        return "public"
    lowered = value.strip().lower()
    if lowered in _ACCESS_LABELS:
        return lowered
    # class lists such as {?pkg.Friend} grant access to a few classes only
    if lowered.startswith("{") or lowered.startswith("?"):
        return "protected"
    return "public"


def encode_initializer(text: str) -> str:
    """Single-line default as a C-ish initializer doxygen can display."""
    if _RE_NUMBER.match(text):
        return text
    m = _RE_SINGLE_QUOTED.match(text)
    if m:
        return _c_string(m.group(1).replace("''", "'"))
    m = _RE_DOUBLE_QUOTED.match(text)
    if m:
        return _c_string(m.group(1).replace('""', '"'))
    m = _RE_CALL.match(text)
    if m and _outer_group(text, len(m.group(1))):
        return f"{m.group(1)}({_c_string(m.group(2))})"
    if text.startswith("{") and _outer_group(text, 0):
        return "{" + _c_string(text[1:-1]) + "}"
    return _c_string(text)


def _outer_group(text: str, open_pos: int) -> bool:
    """True when the bracket at *open_pos* closes at the very end of *text*."""
    depth = 0
    quote = None
    for idx in range(open_pos, len(text)):
        ch = text[idx]
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in "'\"" and idx > open_pos and not (text[idx - 1].isalnum() or text[idx - 1] in ")]}"):
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                return idx == len(text) - 1
    return False


def _c_string(text: str) -> str:
    return '"' + text.replace('"', '\\"') + '"'


def _param_name(name: str) -> str:
    return "unused" if name == "~" else name


def safe_comment_text(text: str) -> str:
    return text.replace("*/", "* /")


def c_comment(raw: str, block: bool) -> str:
    if block:
        inner = raw.split("\n")[1:-1]
        return "/*" + safe_comment_text("\n".join([""] + inner + [""])) + "*/"
    return "/* " + safe_comment_text(raw.lstrip("%").strip()) + " */"


def render_doc(doc: DocBlock, indent: str, head: list[str] | None = None) -> list[str]:
    content: list[str] = list(head or [])
    if doc.brief:
        content.append("@brief " + doc.brief[0])
        content.extend(doc.brief[1:])
    if doc.details:
        if content:
            content.append("")
        content.extend(doc.details)

    tags = sorted(doc.tags, key=lambda t: _TAG_ORDER.get(t.kind, len(_TAG_ORDER)))
    if tags and content:
        content.append("")
    for tag in tags:
        content.extend(_render_tag(tag))

    if doc.default_text is not None:
        content.extend(_render_default(doc))

    if not content:
        return [indent + "/** */"]
    lines = [f"{indent}/** {safe_comment_text(content[0])}".rstrip()]
    for line in content[1:]:
        lines.append(f"{indent} * {safe_comment_text(line)}".rstrip())
    lines.append(f"{indent} */")
    return lines


_TAG_ORDER = {"param": 0, "retval": 1, "sa": 2, "note": 3, "event": 4}


def _render_tag(tag) -> list[str]:
    if tag.kind == "event":
        return [f"@event {tag.key}"]
    head = f"@{tag.kind}"
    if tag.key:
        head += f" {tag.key}"
    first = tag.lines[0] if tag.lines else ""
    out = [f"{head} {first}".rstrip()]
    out.extend(f"  {line}" for line in tag.lines[1:])
    return out


def _render_default(doc: DocBlock) -> list[str]:
    text = doc.default_text
    if doc.default_is_code and "\n" in text:
        return ["<br/>@b Default:", "@verbatim", *text.split("\n"), "@endverbatim"]
    return [f"<br/>@b Default: {text}"]


def render_loose(comment: LooseComment, indent: str) -> list[str]:
    if comment.doc is not None:
        return render_doc(comment.doc, indent, head=[comment.tag_line] if comment.tag_line else None)
    if not comment.lines:
        return []
    if len(comment.lines) == 1:
        return [f"{indent}/* {safe_comment_text(comment.lines[0])} */"]
    lines = [f"{indent}/* {safe_comment_text(comment.lines[0])}".rstrip()]
    for line in comment.lines[1:]:
        lines.append(f"{indent} * {safe_comment_text(line)}".rstrip())
    lines.append(f"{indent} */")
    return lines
