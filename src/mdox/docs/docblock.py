"""Doc comment text to :class:`~mdox.model.DocBlock`.

MATLAB help text is free-form.  The conventions recognised here are the
ones MATLAB's own ``help`` output and doxygen users mix in practice:

* the first paragraph is the brief, following paragraphs are details;
* ``Parameters:`` / ``Return values:`` open ``name: text`` lists, where
  ``@type T`` inside an entry gives the parameter or return type;
* ``See also:`` becomes ``@sa``;
* ``@type T`` anywhere else gives the documented member's type;
* ``@default text`` replaces the synthesized default description;
* ``$x$`` and ``$$x$$`` become doxygen inline and display formulas;
* ``@verbatim`` / ``@code`` regions are copied untouched.
"""

from __future__ import annotations

import re

from mdox.model import DocBlock, DocTag
from mdox.parse.source import COMMENT, SourceUnit, Token

# ── Regex patterns ────────────────────────────────────────────────────

_RE_LINE_MARKER = re.compile(r"^\s*%+ ?")
_RE_PARAMS = re.compile(r"^\s*parameters\s*:\s*$", re.IGNORECASE)
_RE_RETVALS = re.compile(r"^\s*return\s+values\s*:\s*$", re.IGNORECASE)
_RE_SEE_ALSO = re.compile(r"^\s*see\s+also\s*:?\s*(.*)$", re.IGNORECASE)
_RE_ENTRY = re.compile(r"^\s*([A-Za-z_]\w*)\s*:\s*(.*)$")
_RE_TYPE = re.compile(r"@type\s+(\S+)")
_RE_DEFAULT = re.compile(r"^\s*@default\s+(.*)$")
_RE_NOTE = re.compile(r"^\s*@note\s+(.*)$")
_RE_EXPLICIT = re.compile(r"^\s*[@\\](param|retval)\s+(\w+)\s*(.*)$")
_RE_VERBATIM_OPEN = re.compile(r"^\s*@(verbatim|code)\b")
_RE_VERBATIM_CLOSE = re.compile(r"^\s*@end(verbatim|code)\b")
_RE_DISPLAY_MATH = re.compile(r"\$\$(.+?)\$\$")
# a `$` already written as doxygen's @f$ is left alone
_RE_INLINE_MATH = re.compile(r"(?<!@f)(?<![\\$])\$(?!\$)(.+?)(?<![\\])\$")

RE_NAME_TAG = re.compile(r"^\s*[@\\](var|property|fn|event|class)\s+([\w.]+)")

# list-section states
_TEXT = "text"
_PARAMS = "param"
_RETVALS = "retval"


def comment_lines(unit: SourceUnit, tokens: list[Token]) -> list[str]:
    """Text of comment *tokens* with the ``%`` markers removed."""
    lines: list[str] = []
    for tok in tokens:
        if tok.kind != COMMENT:
            continue
        raw = unit.token_text(tok)
        if tok.block:
            inner = raw.split("\n")[1:-1]
            lines.extend(_dedent(inner))
        else:
            lines.append(_RE_LINE_MARKER.sub("", raw).rstrip())
    return lines


def _dedent(lines: list[str]) -> list[str]:
    widths = [len(l) - len(l.lstrip()) for l in lines if l.strip()]
    cut = min(widths) if widths else 0
    return [l[cut:].rstrip() for l in lines]


def split_name_tag(lines: list[str]) -> tuple[str, str, list[str]] | None:
    """``(kind, name, remaining lines)`` when the block opens with a name tag."""
    if not lines:
        return None
    m = RE_NAME_TAG.match(lines[0])
    if m is None:
        return None
    rest = lines[0][m.end():].strip()
    remaining = ([rest] if rest else []) + lines[1:]
    return m.group(1), m.group(2), remaining


def parse_doc(lines: list[str]) -> DocBlock:
    doc = DocBlock()
    state = _TEXT
    in_brief = True
    verbatim = False
    current: DocTag | None = None

    for line in lines:
        if verbatim:
            doc.details.append(line)
            if _RE_VERBATIM_CLOSE.match(line):
                verbatim = False
            continue
        if _RE_VERBATIM_OPEN.match(line):
            in_brief = False
            current = None
            state = _TEXT
            verbatim = not _RE_VERBATIM_CLOSE.search(line)
            doc.details.append(line)
            continue

        stripped = line.strip()
        if not stripped:
            current = None
            state = _TEXT
            if doc.brief:
                in_brief = False
            if not in_brief and doc.details and doc.details[-1] != "":
                doc.details.append("")
            continue

        if _RE_PARAMS.match(line):
            state, current, in_brief = _PARAMS, None, False
            continue
        if _RE_RETVALS.match(line):
            state, current, in_brief = _RETVALS, None, False
            continue

        m = _RE_SEE_ALSO.match(line)
        if m:
            current = DocTag("sa", "", [m.group(1).strip()] if m.group(1).strip() else [])
            doc.tags.append(current)
            state, in_brief = _TEXT, False
            continue
        m = _RE_DEFAULT.match(line)
        if m:
            doc.default_text = m.group(1).strip()
            current = None
            continue
        m = _RE_NOTE.match(line)
        if m:
            current = DocTag("note", "", [format_math(m.group(1))])
            doc.tags.append(current)
            continue
        m = _RE_EXPLICIT.match(line)
        if m:
            current = _entry(doc, m.group(1), m.group(2), m.group(3))
            continue

        if state in (_PARAMS, _RETVALS):
            m = _RE_ENTRY.match(line)
            if m:
                current = _entry(doc, state, m.group(1), m.group(2))
                continue

        if current is not None:
            current.lines.append(format_math(stripped))
            continue

        type_match = _RE_TYPE.search(line)
        if type_match:
            doc.type_name = type_match.group(1)
            line = _RE_TYPE.sub("", line).rstrip()
            if not line.strip():
                continue
        text = format_math(line.rstrip())
        if in_brief:
            doc.brief.append(text.strip())
        else:
            doc.details.append(text)

    while doc.details and not doc.details[-1].strip():
        doc.details.pop()
    return doc


def _entry(doc: DocBlock, kind: str, name: str, text: str) -> DocTag:
    type_match = _RE_TYPE.search(text)
    if type_match:
        types = doc.param_types if kind == _PARAMS else doc.retval_types
        types[name] = type_match.group(1)
        text = _RE_TYPE.sub("", text)
    tag = DocTag(kind, name, [format_math(text.strip())])
    doc.tags.append(tag)
    return tag


def format_math(text: str) -> str:
    text = _RE_DISPLAY_MATH.sub(r"@f[\1@f]", text)
    return _RE_INLINE_MATH.sub(r"@f$\1@f$", text)


def merge_note(target: DocBlock, extra: DocBlock) -> None:
    """Fold a further doc block for the same member into *target* as notes."""
    body = [l for l in extra.brief + extra.details if l.strip()]
    if body:
        target.tags.append(DocTag("note", "", body))
    target.tags.extend(extra.tags)
    if extra.type_name and not target.type_name:
        target.type_name = extra.type_name
    if extra.default_text and not target.default_text:
        target.default_text = extra.default_text
    for name, type_name in extra.param_types.items():
        target.param_types.setdefault(name, type_name)
    for name, type_name in extra.retval_types.items():
        target.retval_types.setdefault(name, type_name)
