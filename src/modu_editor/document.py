"""Document tree model for rich-text content.

Nodes mirror the JSON produced by the editor (``{"type": ..., "attrs": ...,
"content": [...], "text": ..., "marks": [...]}``). Each known kind has its own
class; anything else is kept as :class:`Other` so round trips never lose data.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

HEADING_LEVELS = (1, 2, 3)


@dataclass
class Node:
    attrs: Dict[str, Any] = field(default_factory=dict)
    content: Optional[List["Node"]] = None
    marks: List[Dict[str, Any]] = field(default_factory=list)

    type_name: ClassVar[str] = ""
    always_leaf: ClassVar[bool] = False

    @property
    def type(self) -> str:
        return self.type_name

    @property
    def is_leaf(self) -> bool:
        return self.always_leaf

    @property
    def node_size(self) -> int:
        if self.is_leaf:
            return 1
        return content_size(self.content or []) + 2


@dataclass
class Text(Node):
    text: str = ""

    type_name: ClassVar[str] = "text"
    always_leaf: ClassVar[bool] = True

    @property
    def node_size(self) -> int:
        return len(self.text)


@dataclass
class Paragraph(Node):
    type_name: ClassVar[str] = "paragraph"


@dataclass
class Heading(Node):
    type_name: ClassVar[str] = "heading"

    @property
    def level(self) -> int:
        value = self.attrs.get("level")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and not isinstance(value, bool) and value in HEADING_LEVELS:
            return value
        return 1


@dataclass
class BulletList(Node):
    type_name: ClassVar[str] = "bulletList"


@dataclass
class OrderedList(Node):
    type_name: ClassVar[str] = "orderedList"


@dataclass
class ListItem(Node):
    type_name: ClassVar[str] = "listItem"


@dataclass
class HardBreak(Node):
    type_name: ClassVar[str] = "hardBreak"
    always_leaf: ClassVar[bool] = True


@dataclass
class Image(Node):
    type_name: ClassVar[str] = "image"
    always_leaf: ClassVar[bool] = True

    @property
    def src(self) -> Optional[str]:
        return self.attrs.get("src")

    @property
    def width(self) -> Optional[int]:
        return _int_or_none(self.attrs.get("width"))

    @property
    def height(self) -> Optional[int]:
        return _int_or_none(self.attrs.get("height"))


@dataclass
class Other(Node):
    """Any node kind without dedicated handling (``doc``, ``blockquote``, ...)."""

    name: str = ""

    @property
    def type(self) -> str:
        return self.name

    @property
    def is_leaf(self) -> bool:
        return self.content is None


NODE_CLASSES: Dict[str, type] = {
    cls.type_name: cls
    for cls in (Text, Paragraph, Heading, BulletList, OrderedList, ListItem, HardBreak, Image)
}


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    if isinstance(value, str):
        return parse_dimension(value)
    return None


def parse_dimension(value: Optional[str]) -> Optional[int]:
    """Parse an HTML ``width``/``height`` attribute the way ``parseInt`` would."""
    if not value:
        return None
    digits = ""
    for ch in value.strip():
        if ch.isdigit():
            digits += ch
        elif ch in "+-" and not digits:
            digits += ch
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


def content_size(nodes: Sequence[Node]) -> int:
    return sum(node.node_size for node in nodes)


def make_doc(content: Optional[Iterable[Node]] = None) -> Other:
    return Other(name="doc", content=list(content or []))


def text_document(text: str) -> Other:
    """Wrap plain text in a single-paragraph document."""
    return make_doc([Paragraph(content=[Text(text=text)])])


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def node_from_json(data: Any) -> Optional[Node]:
    """Build a node from editor JSON. Malformed input degrades instead of raising.

    The tree is walked with an explicit stack, so nesting depth is not bounded
    by the interpreter recursion limit.
    """
    if isinstance(data, Node):
        return data
    root = _node_shell(data)
    if root is None:
        return None

    pending: List[Tuple[Node, Dict[str, Any]]] = [(root, data)]
    while pending:
        node, raw = pending.pop()
        if node.content is None:
            continue
        for item in raw["content"]:
            if isinstance(item, Node):
                node.content.append(item)
                continue
            child = _node_shell(item)
            if child is None:
                continue
            node.content.append(child)
            if child.content is not None:
                pending.append((child, item))
    return root


def _node_shell(data: Any) -> Optional[Node]:
    """Node for one JSON object, with an empty ``content`` list still to be filled."""
    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    attrs = data.get("attrs")
    attrs = dict(attrs) if isinstance(attrs, dict) else {}
    marks = data.get("marks")
    marks = [dict(m) for m in marks if isinstance(m, dict)] if isinstance(marks, list) else []
    content: Optional[List[Node]] = [] if isinstance(data.get("content"), list) else None

    if kind == Text.type_name:
        text = data.get("text")
        return Text(text=text if isinstance(text, str) else "", attrs=attrs, marks=marks)

    cls = NODE_CLASSES.get(kind) if isinstance(kind, str) else None
    if cls is None:
        return Other(name=kind if isinstance(kind, str) else "", attrs=attrs, content=content, marks=marks)
    return cls(attrs=attrs, content=content, marks=marks)


def node_to_json(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": node.type}
    if node.attrs:
        data["attrs"] = dict(node.attrs)
    if isinstance(node, Text):
        data["text"] = node.text
    if node.content is not None:
        data["content"] = [node_to_json(child) for child in node.content]
    if node.marks:
        data["marks"] = [dict(m) for m in node.marks]
    return data


def coerce_content(value: Any) -> Optional[Node]:
    """Normalize stored content into a document node.

    Stored answers may be editor JSON, a JSON string, or legacy plain text.
    Strings that look like JSON objects are decoded; anything else (including
    undecodable JSON) becomes a one-paragraph document.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        if value.strip().startswith("{"):
            try:
                decoded = json.loads(value)
            except ValueError:
                return text_document(value)
            node = node_from_json(decoded)
            return node if node is not None else text_document(value)
        return text_document(value)
    return node_from_json(value)


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


def node_at(doc: Node, pos: int) -> Optional[Node]:
    """Return the node that starts exactly at ``pos`` inside ``doc``."""
    found = _locate(doc.content or [], pos)
    return found[-1][1] if found else None


def _locate(nodes: Sequence[Node], pos: int) -> Optional[List[Tuple[int, Node]]]:
    # Returns the path of (index, node) pairs leading to the node at pos.
    if pos < 0:
        return None
    offset = 0
    for index, child in enumerate(nodes):
        end = offset + child.node_size
        if pos < end:
            if pos == offset:
                return [(index, child)]
            if child.is_leaf:
                return None
            inner = _locate(child.content or [], pos - offset - 1)
            if inner is None:
                return None
            return [(index, child)] + inner
        offset = end
    return None


def iter_positions(doc: Node) -> Iterable[Tuple[int, Node]]:
    """Yield ``(pos, node)`` for every node in document order."""

    def _walk(nodes: Sequence[Node], base: int):
        offset = base
        for child in nodes:
            yield offset, child
            if not child.is_leaf:
                yield from _walk(child.content or [], offset + 1)
            offset += child.node_size

    yield from _walk(doc.content or [], 0)


def set_node_attrs(doc: Node, pos: int, attrs: Dict[str, Any]) -> Optional[Node]:
    """Return a copy of ``doc`` where the node at ``pos`` carries ``attrs``.

    Untouched subtrees are shared with the input. ``None`` when no node starts
    at ``pos``.
    """
    path = _locate(doc.content or [], pos)
    if not path:
        return None
    return _rebuild(doc, path, dict(attrs))


def _rebuild(parent: Node, path: List[Tuple[int, Node]], attrs: Dict[str, Any]) -> Node:
    index, child = path[0]
    if len(path) == 1:
        new_child = replace(child, attrs=attrs)
    else:
        new_child = _rebuild(child, path[1:], attrs)
    content = list(parent.content or [])
    content[index] = new_child
    return replace(parent, content=content)


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_CONTAINER_TAGS = {
    "p": (Paragraph, True),
    "ul": (BulletList, False),
    "ol": (OrderedList, False),
    "li": (ListItem, False),
}
_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 3, "h5": 3, "h6": 3}
_MARK_TAGS = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "s": "strike",
    "code": "code",
}
_MARK_HTML = {"bold": "strong", "italic": "em", "underline": "u", "strike": "s", "code": "code"}


def html_to_document(html_text: str) -> Other:
    """Parse an editor HTML fragment into a document.

    ``<img>`` ``width``/``height`` attributes are read with ``parseInt``
    semantics; missing or non-numeric values become ``None``.
    """
    try:
        from bs4 import BeautifulSoup  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

    soup = BeautifulSoup(html_text or "", "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    root = soup.body if soup.body is not None else soup
    return make_doc(_HtmlReader().children(root, [], inline=False))


class _HtmlReader:
    def __init__(self) -> None:
        from bs4.element import NavigableString, PreformattedString, Tag  # type: ignore

        self._string = NavigableString
        self._preformatted = PreformattedString
        self._tag = Tag

    def children(self, element, marks: List[Dict[str, Any]], *, inline: bool) -> List[Node]:
        nodes: List[Node] = []
        for child in element.children:
            if isinstance(child, self._preformatted):
                continue
            if isinstance(child, self._string):
                text = str(child)
                # whitespace between block elements is layout, not content
                if text and (inline or text.strip()):
                    nodes.append(Text(text=text, marks=[dict(m) for m in marks]))
                continue
            if isinstance(child, self._tag):
                nodes.extend(self.element(child, marks, inline=inline))
        return nodes

    def element(self, tag, marks: List[Dict[str, Any]], *, inline: bool) -> List[Node]:
        name = tag.name.lower()
        if name == "br":
            return [HardBreak()]
        if name == "img":
            return [_html_image(tag)]
        if name in _HEADING_TAGS:
            level = _HEADING_TAGS[name]
            return [Heading(attrs={"level": level}, content=self.children(tag, marks, inline=True))]
        if name in _CONTAINER_TAGS:
            cls, inner_inline = _CONTAINER_TAGS[name]
            return [cls(content=self.children(tag, marks, inline=inner_inline))]
        if name in _MARK_TAGS:
            return self.children(tag, marks + [{"type": _MARK_TAGS[name]}], inline=True)
        if name == "a":
            link = {"type": "link", "attrs": {"href": tag.get("href")}}
            return self.children(tag, marks + [link], inline=True)
        if name == "blockquote":
            return [Other(name="blockquote", content=self.children(tag, marks, inline=False))]
        if name == "hr":
            return [Other(name="horizontalRule")]
        return self.children(tag, marks, inline=inline)


def _html_image(tag) -> Image:
    return Image(
        attrs={
            "src": tag.get("src"),
            "alt": tag.get("alt"),
            "title": tag.get("title"),
            "width": parse_dimension(tag.get("width")),
            "height": parse_dimension(tag.get("height")),
        }
    )


def document_to_html(content: Any) -> str:
    """Render a document (or editor JSON) as an HTML fragment."""
    node = coerce_content(content)
    if node is None:
        return ""
    return "".join(_node_html(child) for child in (node.content or []))


def _node_html(node: Node) -> str:
    if isinstance(node, Text):
        out = html.escape(node.text, quote=False)
        for mark in node.marks:
            kind = mark.get("type")
            if kind == "link":
                href = (mark.get("attrs") or {}).get("href") or ""
                out = f'<a href="{html.escape(str(href))}">{out}</a>'
            elif kind in _MARK_HTML:
                tag = _MARK_HTML[kind]
                out = f"<{tag}>{out}</{tag}>"
        return out
    if isinstance(node, HardBreak):
        return "<br>"
    if isinstance(node, Image):
        parts = [
            f'{key}="{html.escape(str(node.attrs[key]))}"'
            for key in ("src", "alt", "title", "width", "height")
            if node.attrs.get(key) not in (None, "")
        ]
        return "<img " + " ".join(parts) + ">" if parts else "<img>"

    inner = "".join(_node_html(child) for child in (node.content or []))
    if isinstance(node, Heading):
        return f"<h{node.level}>{inner}</h{node.level}>"
    if isinstance(node, Paragraph):
        return f"<p>{inner}</p>"
    if isinstance(node, BulletList):
        return f"<ul>{inner}</ul>"
    if isinstance(node, OrderedList):
        return f"<ol>{inner}</ol>"
    if isinstance(node, ListItem):
        return f"<li>{inner}</li>"
    if node.type == "blockquote":
        return f"<blockquote>{inner}</blockquote>"
    if node.type == "horizontalRule":
        return "<hr>"
    return inner
