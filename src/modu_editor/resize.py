"""Drag-to-resize for images selected in an editing surface.

One :class:`ImageResizeController` is attached per editing surface. While an
image node is selected a handle sits on its bottom-right corner; dragging the
handle previews the new size on the rendered element and releasing it commits
``width``/``height`` to the document in a single transaction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from .document import Image, Node

LOG = logging.getLogger("modu_editor")

MIN_SIZE = 50
MAX_SIZE = 1200
HANDLE_SIZE = 16

POINTER_MOVE = "pointermove"
POINTER_UP = "pointerup"


@dataclass
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class PointerEvent:
    x: float
    y: float
    shift: bool = False


class RenderedElement(Protocol):
    def bounding_rect(self) -> Rect: ...

    def set_display_size(self, width: float, height: float) -> None: ...


class EditorSurface(Protocol):
    def selected_node(self) -> Optional[Tuple[int, Node]]: ...

    def node_dom(self, pos: int) -> Optional[RenderedElement]: ...

    def node_at(self, pos: int) -> Optional[Node]: ...

    def set_node_attrs(self, pos: int, attrs: Dict[str, Any]) -> None: ...

    def container_rect(self) -> Rect: ...

    def scroll_offset(self) -> Tuple[float, float]: ...

    def attach_handle(self, handle: "ResizeHandle") -> None: ...

    def detach_handle(self, handle: "ResizeHandle") -> None: ...

    def add_window_listener(self, name: str, callback: Callable[[PointerEvent], None]) -> None: ...

    def remove_window_listener(self, name: str, callback: Callable[[PointerEvent], None]) -> None: ...


class ResizeState(Enum):
    IDLE = "idle"
    SELECTED = "selected"
    DRAGGING = "dragging"


@dataclass
class ResizeHandle:
    size: int = HANDLE_SIZE
    visible: bool = False
    left: float = 0.0
    top: float = 0.0


@dataclass
class ActiveImage:
    pos: int
    node: Node
    element: RenderedElement


@dataclass
class DragState:
    start_x: float
    start_y: float
    start_width: float
    start_height: float
    aspect_ratio: float
    preview_width: Optional[float] = None
    preview_height: Optional[float] = None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded towards +inf (``round`` would go to even)."""
    return math.floor(value + 0.5)


def compute_resize(
    start_width: float,
    start_height: float,
    dx: float,
    dy: float,
    aspect_ratio: float,
    keep_aspect: bool,
    low: float = MIN_SIZE,
    high: float = MAX_SIZE,
) -> Tuple[float, float]:
    """Candidate size for a pointer offset of ``(dx, dy)`` from the drag start."""
    width = clamp(start_width + dx, low, high)
    height = clamp(start_height + dy, low, high)
    if keep_aspect:
        height = clamp(width / aspect_ratio, low, high)
    return width, height


class ImageResizeController:
    """Selection-driven resize state machine for one editing surface."""

    def __init__(
        self,
        surface: EditorSurface,
        *,
        min_size: int = MIN_SIZE,
        max_size: int = MAX_SIZE,
        handle_size: int = HANDLE_SIZE,
    ) -> None:
        self.surface = surface
        self.min_size = min_size
        self.max_size = max_size
        self.handle = ResizeHandle(size=handle_size)
        self.active: Optional[ActiveImage] = None
        self.drag: Optional[DragState] = None
        self._destroyed = False
        surface.attach_handle(self.handle)

    @property
    def state(self) -> ResizeState:
        if self.drag is not None:
            return ResizeState.DRAGGING
        if self.active is not None:
            return ResizeState.SELECTED
        return ResizeState.IDLE

    def update(self) -> None:
        """Sync with the surface selection; call after every view update."""
        if self._destroyed:
            return
        selected = self._selected_image()
        if selected is None:
            if self.active is not None:
                LOG.debug("image-resize: selection left image at %d", self.active.pos)
                self._abandon_drag()
                self.active = None
                self.handle.visible = False
            return

        if self.active is None or self.active.pos != selected.pos:
            if self.drag is not None:
                self._abandon_drag()
            LOG.debug("image-resize: image selected at %d", selected.pos)
            self.active = selected
            self.handle.visible = True
        self._position_handle()

    def pointer_down(self, event: PointerEvent) -> None:
        """Start a drag; bound to the handle's press event."""
        if self._destroyed or self.active is None or self.drag is not None:
            return
        rect = self.active.element.bounding_rect()
        self.drag = DragState(
            start_x=event.x,
            start_y=event.y,
            start_width=rect.width,
            start_height=rect.height,
            aspect_ratio=rect.width / max(rect.height, 1),
        )
        self.surface.add_window_listener(POINTER_MOVE, self._on_pointer_move)
        self.surface.add_window_listener(POINTER_UP, self._on_pointer_up)
        LOG.debug("image-resize: drag start %.0fx%.0f", rect.width, rect.height)

    def _on_pointer_move(self, event: PointerEvent) -> None:
        if self.drag is None or self.active is None:
            return
        drag = self.drag
        width, height = compute_resize(
            drag.start_width,
            drag.start_height,
            event.x - drag.start_x,
            event.y - drag.start_y,
            drag.aspect_ratio,
            event.shift,
            self.min_size,
            self.max_size,
        )
        drag.preview_width = width
        drag.preview_height = height
        self.active.element.set_display_size(round_half_up(width), round_half_up(height))
        self._position_handle()

    def _on_pointer_up(self, event: PointerEvent) -> None:
        if self.drag is None or self.active is None:
            return
        drag = self.drag
        self.drag = None
        self._remove_window_listeners()

        width = round_half_up(drag.preview_width if drag.preview_width is not None else drag.start_width)
        height = round_half_up(drag.preview_height if drag.preview_height is not None else drag.start_height)
        self.commit(self.active.pos, width, height)

    def commit(self, pos: int, width: int, height: int) -> bool:
        """Write ``width``/``height`` onto the image at ``pos``; other attributes are kept.

        Returns ``False`` without a transaction when ``pos`` no longer holds an image.
        """
        current = self.surface.node_at(pos)
        if not isinstance(current, Image):
            LOG.debug("image-resize: no image at %d, commit skipped", pos)
            return False
        attrs = dict(current.attrs)
        attrs["width"] = width
        attrs["height"] = height
        self.surface.set_node_attrs(pos, attrs)
        LOG.debug("image-resize: committed %dx%d at %d", width, height, pos)
        return True

    def destroy(self) -> None:
        """Remove the handle and every listener; an in-flight drag is dropped."""
        if self._destroyed:
            return
        self._destroyed = True
        self._abandon_drag()
        self.active = None
        self.handle.visible = False
        self.surface.detach_handle(self.handle)

    def _abandon_drag(self) -> None:
        if self.drag is not None:
            self.drag = None
            self._remove_window_listeners()

    def _remove_window_listeners(self) -> None:
        self.surface.remove_window_listener(POINTER_MOVE, self._on_pointer_move)
        self.surface.remove_window_listener(POINTER_UP, self._on_pointer_up)

    def _selected_image(self) -> Optional[ActiveImage]:
        selected = self.surface.selected_node()
        if selected is None:
            return None
        pos, node = selected
        if not isinstance(node, Image):
            return None
        element = self.surface.node_dom(pos)
        if element is None:
            return None
        return ActiveImage(pos=pos, node=node, element=element)

    def _position_handle(self) -> None:
        if self.active is None:
            return
        image = self.active.element.bounding_rect()
        container = self.surface.container_rect()
        scroll_x, scroll_y = self.surface.scroll_offset()
        half = self.handle.size / 2
        self.handle.left = image.right - container.left + scroll_x - half
        self.handle.top = image.bottom - container.top + scroll_y - half
