"""
Lossless markdown parser for vault pages.

Main API:
    parse_markdown(text)  → ParseTree
    render_to_text(tree)  → str

Only the structure the task engine needs is recognised: list items and the
tasks inside them, wiki links, hashtags, deadlines, inline attributes,
fenced code and directive blocks. Everything else is carried as plain text,
so rendering an unmodified tree always reproduces the input exactly.

Directive blocks look like:

    <!-- #query task where done = false -->
    - [ ] Buy milk [[Inbox@12]]
    <!-- /query -->

Their body is parsed like any other markdown so rendered task copies inside
them are real Task nodes.
"""

import re
from typing import List, Optional, Tuple

from models.tree import ParseTree
from parsers.tree import render_to_text

DEADLINE_GLYPH = "📅"

_LIST_ITEM = re.compile(r"^([ \t]*)([-*+]|\d+[.)])([ \t]+|$)")
_FENCE = re.compile(r"^[ \t]*(```|~~~)")
_HEADING = re.compile(r"^#{1,6}(?:[ \t]|$)")
_DIRECTIVE_START = re.compile(r"^<!--\s*#(\w+)\b.*-->\s*$")
_DIRECTIVE_END = r"^<!--\s*/{name}\s*-->\s*$"

# Any run of characters other than brackets and newline, then whitespace or end of line
_TASK_STATE = re.compile(r"\[([^\[\]\n]+)\](?=\s|$)")

_INLINE = re.compile(
    r"(?P<wikilink>\[\[(?P<ref>[^\[\]\n]+)\]\])"
    rf"|(?P<deadline>[ \t]*{DEADLINE_GLYPH}[ \t]*\d{{4}}-\d{{2}}-\d{{2}})"
    r"|(?P<battr>[ \t]*\[(?P<bname>[A-Za-z_][\w-]*)::[ \t]*(?P<bvalue>[^\]\n]*)\])"
    r"|(?P<attr>[ \t]*(?<![\w:])(?P<name>[A-Za-z_][\w-]*)::[ \t]*(?P<value>[^\s\]]+))"
    r"|(?P<hashtag>(?<![^\s(])#[\w/-]+)"
)

# (line start offset, line body, line ending)
_Line = Tuple[int, str, str]


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def _leaf(start: int, text: str) -> ParseTree:
    return ParseTree(start=start, end=start + len(text), text=text)


def _wrap(node_type: str, start: int, text: str) -> ParseTree:
    """Typed node holding a single text leaf."""
    return ParseTree(
        type=node_type, start=start, end=start + len(text), children=[_leaf(start, text)]
    )


def _container(node_type: str, children: List[ParseTree]) -> ParseTree:
    return ParseTree(
        type=node_type, start=children[0].start, end=children[-1].end, children=children
    )


def _indent_width(line: str) -> int:
    stripped = line.lstrip(" \t")
    return len(line[: len(line) - len(stripped)].expandtabs(4))


def _split_lines(text: str) -> List[_Line]:
    lines: List[_Line] = []
    offset = 0
    for raw in text.splitlines(keepends=True):
        body = raw.rstrip("\r\n")
        lines.append((offset, body, raw[len(body):]))
        offset += len(raw)
    return lines


# ---------------------------------------------------------------------------
# Inline parsing
# ---------------------------------------------------------------------------

def _attribute_node(m: re.Match, start: int, bracketed: bool) -> ParseTree:
    name_group, value_group = ("bname", "bvalue") if bracketed else ("name", "value")
    base = m.start()

    def at(pos: int) -> int:
        return start + pos - base

    text = m.group(0)
    children = []
    prefix = text[: m.start(name_group) - base]
    if prefix:
        children.append(_leaf(start, prefix))
    children.append(_wrap("AttributeName", at(m.start(name_group)), m.group(name_group)))
    separator = m.string[m.end(name_group):m.start(value_group)]
    children.append(_leaf(at(m.end(name_group)), separator))
    if m.group(value_group):
        children.append(_wrap("AttributeValue", at(m.start(value_group)), m.group(value_group)))
    suffix = m.string[m.end(value_group):m.end()]
    if suffix:
        children.append(_leaf(at(m.end(value_group)), suffix))
    return ParseTree(type="Attribute", start=start, end=start + len(text), children=children)


def _inline_node(m: re.Match, start: int) -> ParseTree:
    kind = m.lastgroup
    text = m.group(0)
    if m.group("wikilink"):
        ref = m.group("ref")
        return ParseTree(
            type="WikiLink",
            start=start,
            end=start + len(text),
            children=[
                _wrap("WikiLinkMark", start, "[["),
                _wrap("WikiLinkPage", start + 2, ref),
                _wrap("WikiLinkMark", start + 2 + len(ref), "]]"),
            ],
        )
    if m.group("deadline"):
        return _wrap("DeadlineDate", start, text)
    if m.group("battr"):
        return _attribute_node(m, start, bracketed=True)
    if m.group("attr"):
        return _attribute_node(m, start, bracketed=False)
    if m.group("hashtag"):
        return _wrap("Hashtag", start, text)
    raise ValueError(f"Unexpected inline match {kind!r}")


def parse_inline(text: str, offset: int) -> List[ParseTree]:
    """Split a single line of text into inline nodes and plain leaves."""
    nodes: List[ParseTree] = []
    cursor = 0
    for m in _INLINE.finditer(text):
        if m.start() > cursor:
            nodes.append(_leaf(offset + cursor, text[cursor:m.start()]))
        nodes.append(_inline_node(m, offset + m.start()))
        cursor = m.end()
    if cursor < len(text):
        nodes.append(_leaf(offset + cursor, text[cursor:]))
    return nodes


def _parse_item_content(content: str, offset: int) -> List[ParseTree]:
    m = _TASK_STATE.match(content)
    if not m:
        return parse_inline(content, offset)
    state = m.group(1)
    state_node = ParseTree(
        type="TaskState",
        start=offset,
        end=offset + m.end(),
        children=[
            _wrap("TaskMarker", offset, "["),
            _leaf(offset + 1, state),
            _wrap("TaskMarker", offset + 1 + len(state), "]"),
        ],
    )
    children = [state_node] + parse_inline(content[m.end():], offset + m.end())
    return [ParseTree(type="Task", start=offset, end=offset + len(content), children=children)]


# ---------------------------------------------------------------------------
# Block parsing
# ---------------------------------------------------------------------------

class _BlockParser:
    def __init__(self, text: str) -> None:
        self.lines = _split_lines(text)

    def blocks(self, lo: int, hi: int) -> List[ParseTree]:
        nodes: List[ParseTree] = []
        i = lo
        while i < hi:
            start, body, eol = self.lines[i]
            if not body.strip():
                nodes.append(_leaf(start, body + eol))
                i += 1
            elif _FENCE.match(body):
                node, i = self._fenced(i, hi)
                nodes.append(node)
            elif _DIRECTIVE_START.match(body) and self._directive_end(i, hi) is not None:
                node, i = self._directive(i, hi)
                nodes.append(node)
            elif _LIST_ITEM.match(body):
                node, i = self._list(i, hi, _indent_width(body))
                nodes.append(node)
            elif _HEADING.match(body):
                nodes.append(self._line_node("ATXHeading", i))
                i += 1
            else:
                node, i = self._paragraph(i, hi)
                nodes.append(node)
        return nodes

    def _line_node(self, node_type: str, i: int) -> ParseTree:
        start, body, eol = self.lines[i]
        children = parse_inline(body, start)
        if eol:
            children.append(_leaf(start + len(body), eol))
        if not children:
            children.append(_leaf(start, ""))
        return _container(node_type, children)

    def _paragraph(self, i: int, hi: int) -> Tuple[ParseTree, int]:
        children: List[ParseTree] = []
        while i < hi:
            _, body, _ = self.lines[i]
            if (
                not body.strip()
                or _FENCE.match(body)
                or _LIST_ITEM.match(body)
                or _HEADING.match(body)
                or _DIRECTIVE_START.match(body)
            ) and children:
                break
            children.extend(self._line_node("Paragraph", i).children)
            i += 1
        return _container("Paragraph", children), i

    def _fenced(self, i: int, hi: int) -> Tuple[ParseTree, int]:
        start = self.lines[i][0]
        fence = _FENCE.match(self.lines[i][1]).group(1)
        j = i + 1
        while j < hi and not self.lines[j][1].lstrip().startswith(fence):
            j += 1
        j = min(j + 1, hi)
        text = "".join(body + eol for _, body, eol in self.lines[i:j])
        return _wrap("FencedCode", start, text), j

    def _directive_end(self, i: int, hi: int) -> Optional[int]:
        name = _DIRECTIVE_START.match(self.lines[i][1]).group(1)
        end_re = re.compile(_DIRECTIVE_END.format(name=re.escape(name)))
        for j in range(i + 1, hi):
            if end_re.match(self.lines[j][1]):
                return j
        return None

    def _directive(self, i: int, hi: int) -> Tuple[ParseTree, int]:
        j = self._directive_end(i, hi)
        start, body, eol = self.lines[i]
        children = [_wrap("DirectiveStart", start, body + eol)]
        inner = self.blocks(i + 1, j)
        if inner:
            children.append(_container("DirectiveBody", inner))
        end_start, end_body, end_eol = self.lines[j]
        children.append(_wrap("DirectiveEnd", end_start, end_body + end_eol))
        return _container("Directive", children), j + 1

    def _list(self, i: int, hi: int, indent: int) -> Tuple[ParseTree, int]:
        first = _LIST_ITEM.match(self.lines[i][1])
        list_type = "OrderedList" if first.group(2)[0].isdigit() else "BulletList"
        items: List[ParseTree] = []
        while i < hi:
            body = self.lines[i][1]
            m = _LIST_ITEM.match(body)
            if not m or _indent_width(body) != indent:
                break
            item, i = self._item(i, hi, m)
            items.append(item)
        return _container(list_type, items), i

    def _item(self, i: int, hi: int, m: re.Match) -> Tuple[ParseTree, int]:
        start, body, eol = self.lines[i]
        indent, mark, space = m.group(1), m.group(2), m.group(3)
        children: List[ParseTree] = []
        if indent:
            children.append(_leaf(start, indent))
        children.append(_wrap("ListMark", start + len(indent), mark))
        if space:
            children.append(_leaf(start + len(indent) + len(mark), space))
        children.extend(_parse_item_content(body[m.end():], start + m.end()))
        if eol:
            children.append(_leaf(start + len(body), eol))
        item_indent = _indent_width(body)
        i += 1

        while i < hi:
            line_start, line_body, line_eol = self.lines[i]
            if not line_body.strip():
                j = i
                while j < hi and not self.lines[j][1].strip():
                    j += 1
                if j >= hi or _indent_width(self.lines[j][1]) <= item_indent:
                    break
                for k in range(i, j):
                    children.append(_leaf(self.lines[k][0], self.lines[k][1] + self.lines[k][2]))
                i = j
                continue
            width = _indent_width(line_body)
            if width <= item_indent:
                break
            if _LIST_ITEM.match(line_body):
                nested, i = self._list(i, hi, width)
                children.append(nested)
            else:
                children.append(self._line_node("Paragraph", i))
                i += 1
        return _container("ListItem", children), i


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_markdown(text: str) -> ParseTree:
    """Parse a full page into a Document tree covering [0, len(text))."""
    parser = _BlockParser(text)
    children = parser.blocks(0, len(parser.lines))
    return ParseTree(type="Document", start=0, end=len(text), children=children)


__all__ = ["DEADLINE_GLYPH", "parse_inline", "parse_markdown", "render_to_text"]
