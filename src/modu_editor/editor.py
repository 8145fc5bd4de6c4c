"""Headless editing surface.

:class:`EditorView` keeps a document, a node selection, rendered boxes for
images and a window-level listener registry. It implements the surface that
:class:`~modu_editor.resize.ImageResizeController` expects, so resize gestures
can run outside a browser (server-side previews, tests, scripted edits).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .document import Image, Node, node_at, set_node_attrs
from .resize import PointerEvent, Rect, ResizeHandle

LOG = logging.getLogger("modu_editor")

Listener = Callable[[PointerEvent], None]
PluginFactory = Callable[["EditorView"], Any]


class Window:
    """Global pointer listeners, dispatched in registration order."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def add_listener(self, name: str, callback: Listener) -> None:
        self._listeners.setdefault(name, []).append(callback)

    def remove_listener(self, name: str, callback: Listener) -> None:
        callbacks = self._listeners.get(name)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self, name: Optional[str] = None) -> int:
        if name is not None:
            return len(self._listeners.get(name, []))
        return sum(len(v) for v in self._listeners.values())

    def emit(self, name: str, event: PointerEvent) -> None:
        for callback in list(self._listeners.get(name, [])):
            callback(event)


@dataclass
class ImageBox:
    """Rendered image: its on-screen rectangle and current display size."""

    rect: Rect

    def bounding_rect(self) -> Rect:
        return Rect(self.rect.left, self.rect.top, self.rect.width, self.rect.height)

    def set_display_size(self, width: float, height: float) -> None:
        self.rect.width = width
        self.rect.height = height


@dataclass
class Transaction:
    pos: int
    attrs: Dict[str, Any]
    before: Node
    after: Node


@dataclass
class EditorView:
    doc: Node
    container: Rect = field(default_factory=lambda: Rect(0, 0, 800, 600))
    scroll: Tuple[float, float] = (0.0, 0.0)
    window: Window = field(default_factory=Window)
    selection: Optional[int] = None
    transactions: List[Transaction] = field(default_factory=list)
    handles: List[ResizeHandle] = field(default_factory=list)
    _boxes: Dict[int, ImageBox] = field(default_factory=dict, init=False, repr=False)
    _plugins: List[Any] = field(default_factory=list, init=False, repr=False)

    # -- plugins ---------------------------------------------------------

    def add_plugin(self, factory: PluginFactory) -> Any:
        plugin = factory(self)
        self._plugins.append(plugin)
        self._notify()
        return plugin

    def destroy(self) -> None:
        for plugin in self._plugins:
            destroy = getattr(plugin, "destroy", None)
            if destroy is not None:
                destroy()
        self._plugins.clear()

    def _notify(self) -> None:
        for plugin in self._plugins:
            update = getattr(plugin, "update", None)
            if update is not None:
                update()

    # -- selection -------------------------------------------------------

    def select_node(self, pos: int) -> None:
        self.selection = pos if node_at(self.doc, pos) is not None else None
        self._notify()

    def clear_selection(self) -> None:
        self.selection = None
        self._notify()

    def selected_node(self) -> Optional[Tuple[int, Node]]:
        if self.selection is None:
            return None
        node = node_at(self.doc, self.selection)
        if node is None:
            return None
        return self.selection, node

    # -- rendering -------------------------------------------------------

    def place_element(self, pos: int, rect: Rect) -> ImageBox:
        box = ImageBox(rect=rect)
        self._boxes[pos] = box
        return box

    def node_dom(self, pos: int) -> Optional[ImageBox]:
        return self._boxes.get(pos)

    def container_rect(self) -> Rect:
        return self.container

    def scroll_offset(self) -> Tuple[float, float]:
        return self.scroll

    def attach_handle(self, handle: ResizeHandle) -> None:
        self.handles.append(handle)

    def detach_handle(self, handle: ResizeHandle) -> None:
        if handle in self.handles:
            self.handles.remove(handle)

    def add_window_listener(self, name: str, callback: Listener) -> None:
        self.window.add_listener(name, callback)

    def remove_window_listener(self, name: str, callback: Listener) -> None:
        self.window.remove_listener(name, callback)

    # -- document --------------------------------------------------------

    def node_at(self, pos: int) -> Optional[Node]:
        return node_at(self.doc, pos)

    def set_document(self, doc: Node, *, notify: bool = True) -> None:
        """Swap the whole document, e.g. when a remote edit arrives."""
        self.doc = doc
        if notify:
            self._notify()

    def set_node_attrs(self, pos: int, attrs: Dict[str, Any]) -> None:
        updated = set_node_attrs(self.doc, pos, attrs)
        if updated is None:
            LOG.debug("editor: transaction at %d dropped, no node", pos)
            return
        self.transactions.append(Transaction(pos=pos, attrs=dict(attrs), before=self.doc, after=updated))
        self.doc = updated
        self._sync_boxes()
        self._notify()

    def _sync_boxes(self) -> None:
        for pos, box in self._boxes.items():
            node = node_at(self.doc, pos)
            if not isinstance(node, Image):
                continue
            if node.width is not None:
                box.rect.width = node.width
            if node.height is not None:
                box.rect.height = node.height
