"""Plain-text and Markdown projections of editor documents."""

from __future__ import annotations

import re
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from .document import (
    BulletList,
    HardBreak,
    Heading,
    ListItem,
    Node,
    OrderedList,
    Paragraph,
    Text,
    document_to_html,
    node_from_json,
)


def document_to_text(content: Any) -> str:
    """Flatten a document into readable plain text.

    Strings pass through untouched. For trees only the ``content`` of the
    outermost node is projected, whatever its type. Paragraphs and headings end
    with a blank line, list items are ``- `` prefixed (ordered lists included).
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _project_all(_nodes(content))
    node = node_from_json(content)
    if node is None or node.content is None:
        return ""
    return _project_all(node.content)


def _nodes(items: Iterable[Any]) -> List[Node]:
    return [node for node in (node_from_json(item) for item in items) if node is not None]


def _project_all(nodes: Iterable[Node]) -> str:
    return "".join(_project(node) for node in nodes)


def _project(root: Node) -> str:
    leaf = _leaf_text(root)
    if leaf is not None:
        return leaf

    # each frame: container, iterator over its children, projected children so far
    stack: List[Tuple[Node, Iterator[Node], List[str]]] = [(root, iter(root.content or []), [])]
    while True:
        node, children, parts = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            text = _wrap(node, "".join(parts))
            if not stack:
                return text
            stack[-1][2].append(text)
            continue
        leaf = _leaf_text(child)
        if leaf is not None:
            parts.append(leaf)
        else:
            stack.append((child, iter(child.content or []), []))


def _leaf_text(node: Node) -> Optional[str]:
    """Projection of a node with no children to visit, else ``None``."""
    if isinstance(node, Text):
        return node.text
    if isinstance(node, HardBreak):
        return "\n"
    if node.content is None:
        return ""
    return None


def _wrap(node: Node, inner: str) -> str:
    if isinstance(node, Paragraph):
        return inner + "\n\n"
    if isinstance(node, Heading):
        return "#" * node.level + " " + inner + "\n\n"
    if isinstance(node, (BulletList, OrderedList)):
        return inner + "\n"
    if isinstance(node, ListItem):
        return "- " + inner.strip() + "\n"
    return inner


def flatten_text(content: Any) -> str:
    """Concatenate every text leaf with no separators."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    node = node_from_json(content)
    if node is None:
        return ""
    return _flatten(node)


def _flatten(node: Node) -> str:
    parts: List[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Text):
            parts.append(current.text)
        else:
            stack.extend(reversed(current.content or []))
    return "".join(parts)


_BLANK_RUN_RE = re.compile(r"\n{3,}")


def document_to_markdown(content: Any, *, bullets: str = "-") -> str:
    """Render a document as Markdown via markdownify, keeping images and links."""
    try:
        from markdownify import markdownify as md_convert  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"markdownify not available: {exc}") from exc

    html_str = document_to_html(content)
    if not html_str:
        return ""
    md_text = md_convert(html_str, heading_style="ATX", bullets=bullets)
    md_text = _BLANK_RUN_RE.sub("\n\n", md_text).strip()
    return md_text + "\n" if md_text else ""
