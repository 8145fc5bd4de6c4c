import pytest

from modu_editor.document import node_from_json, node_to_json
from modu_editor.editor import EditorView
from modu_editor.resize import (
    MAX_SIZE,
    MIN_SIZE,
    POINTER_MOVE,
    POINTER_UP,
    ImageResizeController,
    PointerEvent,
    Rect,
    ResizeState,
    compute_resize,
    round_half_up,
)

IMAGE_POS = 4
SECOND_IMAGE_POS = 8


def _doc():
    return node_from_json(
        {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "hi"}]},
                {"type": "image", "attrs": {"src": "a.png", "alt": "A", "title": None, "width": 200, "height": 100}},
                {"type": "paragraph", "content": [{"type": "text", "text": "x"}]},
                {"type": "image", "attrs": {"src": "b.png", "alt": "B", "width": 300, "height": 300}},
            ],
        }
    )


def _view(image_rect=None):
    view = EditorView(doc=_doc(), container=Rect(10, 20, 800, 600))
    view.place_element(IMAGE_POS, image_rect or Rect(110, 220, 200, 100))
    view.place_element(SECOND_IMAGE_POS, Rect(110, 400, 300, 300))
    controller = view.add_plugin(ImageResizeController)
    return view, controller


def _drag(view, controller, moves, *, start=(500.0, 500.0), shift=False):
    controller.pointer_down(PointerEvent(*start))
    for dx, dy in moves:
        view.window.emit(POINTER_MOVE, PointerEvent(start[0] + dx, start[1] + dy, shift=shift))
    view.window.emit(POINTER_UP, PointerEvent(start[0], start[1]))


def test_starts_idle_with_hidden_handle():
    view, controller = _view()
    assert controller.state is ResizeState.IDLE
    assert controller.handle.visible is False
    assert view.handles == [controller.handle]


def test_selecting_image_shows_handle_at_corner():
    view, controller = _view()
    view.select_node(IMAGE_POS)

    assert controller.state is ResizeState.SELECTED
    assert controller.handle.visible is True
    # right 310 - container 10 - 8, bottom 320 - container 20 - 8
    assert (controller.handle.left, controller.handle.top) == (292, 292)


def test_handle_position_includes_container_scroll():
    view, controller = _view()
    view.scroll = (5.0, 40.0)
    view.select_node(IMAGE_POS)
    assert (controller.handle.left, controller.handle.top) == (297, 332)


def test_selecting_non_image_hides_handle():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    view.select_node(0)

    assert controller.state is ResizeState.IDLE
    assert controller.handle.visible is False
    assert controller.active is None


def test_clearing_selection_returns_to_idle():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    view.clear_selection()
    assert controller.state is ResizeState.IDLE


def test_selecting_other_image_switches_active_record():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    view.select_node(SECOND_IMAGE_POS)

    assert controller.state is ResizeState.SELECTED
    assert controller.active.pos == SECOND_IMAGE_POS
    assert controller.active.node.src == "b.png"
    assert (controller.handle.left, controller.handle.top) == (392, 672)


def test_image_without_rendered_element_is_ignored():
    view = EditorView(doc=_doc())
    controller = view.add_plugin(ImageResizeController)
    view.select_node(IMAGE_POS)
    assert controller.state is ResizeState.IDLE


def test_drag_beyond_max_is_clamped():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(1800, 0)])

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (MAX_SIZE, 100)


def test_drag_below_min_is_clamped():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(-190, -95)])

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (MIN_SIZE, MIN_SIZE)


def test_shift_drag_preserves_aspect_ratio():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(200, 5)], shift=True)

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (400, 200)


def test_free_drag_uses_vertical_offset():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(200, 5)])

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (400, 105)


def test_one_commit_per_gesture():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(i, i) for i in range(1, 40)])

    assert len(view.transactions) == 1
    assert view.transactions[0].pos == IMAGE_POS
    assert (view.transactions[0].attrs["width"], view.transactions[0].attrs["height"]) == (239, 139)


def test_commit_keeps_other_attributes():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(50, 50)])

    assert node_to_json(view.node_at(IMAGE_POS))["attrs"] == {
        "src": "a.png",
        "alt": "A",
        "title": None,
        "width": 250,
        "height": 150,
    }


def test_release_without_move_commits_start_size():
    view, controller = _view(image_rect=Rect(110, 220, 199.6, 100.4))
    view.select_node(IMAGE_POS)
    _drag(view, controller, [])

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (200, 100)


def test_preview_is_visual_until_release():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))
    view.window.emit(POINTER_MOVE, PointerEvent(100, 50))

    assert controller.state is ResizeState.DRAGGING
    box = view.node_dom(IMAGE_POS)
    assert (box.rect.width, box.rect.height) == (300, 150)
    assert (controller.handle.left, controller.handle.top) == (392, 342)
    assert view.node_at(IMAGE_POS).width == 200
    assert view.transactions == []

    view.window.emit(POINTER_UP, PointerEvent(100, 50))
    assert controller.state is ResizeState.SELECTED
    assert view.node_at(IMAGE_POS).width == 300


def test_window_listeners_only_while_dragging():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    assert view.window.listener_count() == 0

    controller.pointer_down(PointerEvent(0, 0))
    assert view.window.listener_count(POINTER_MOVE) == 1
    assert view.window.listener_count(POINTER_UP) == 1

    view.window.emit(POINTER_UP, PointerEvent(0, 0))
    assert view.window.listener_count() == 0


def test_pointer_down_while_idle_does_nothing():
    view, controller = _view()
    controller.pointer_down(PointerEvent(0, 0))
    assert controller.state is ResizeState.IDLE
    assert view.window.listener_count() == 0


def test_stale_target_skips_commit():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))
    view.window.emit(POINTER_MOVE, PointerEvent(40, 40))

    trimmed = node_from_json({"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "hi"}]}]})
    view.set_document(trimmed, notify=False)
    view.window.emit(POINTER_UP, PointerEvent(40, 40))

    assert view.transactions == []
    assert view.window.listener_count() == 0
    assert node_to_json(view.doc) == node_to_json(trimmed)


def test_other_node_at_stale_position_is_not_resized():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))
    view.window.emit(POINTER_MOVE, PointerEvent(40, 40))

    replaced = node_from_json(
        {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "hi"}]},
                {"type": "horizontalRule"},
            ],
        }
    )
    view.set_document(replaced, notify=False)
    view.window.emit(POINTER_UP, PointerEvent(40, 40))

    assert view.transactions == []
    assert node_to_json(view.node_at(IMAGE_POS)) == {"type": "horizontalRule"}


def test_commit_refuses_non_image_nodes():
    view, controller = _view()
    assert controller.commit(0, 300, 300) is False
    assert controller.commit(IMAGE_POS, 300, 300) is True
    assert [t.pos for t in view.transactions] == [IMAGE_POS]


def test_half_pixel_sizes_round_up():
    view, controller = _view(image_rect=Rect(110, 220, 200.5, 100.5))
    view.select_node(IMAGE_POS)
    _drag(view, controller, [])

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (201, 101)


def test_preview_and_commit_round_halves_alike():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(0.5, 2.5)])

    box = view.node_dom(IMAGE_POS)
    image = view.node_at(IMAGE_POS)
    assert (box.rect.width, box.rect.height) == (image.width, image.height) == (201, 103)


def test_selection_leaving_image_abandons_drag():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))
    view.window.emit(POINTER_MOVE, PointerEvent(30, 30))

    view.select_node(0)
    view.window.emit(POINTER_UP, PointerEvent(30, 30))

    assert controller.state is ResizeState.IDLE
    assert view.transactions == []
    assert view.window.listener_count() == 0


def test_zero_height_image_does_not_divide_by_zero():
    view, controller = _view(image_rect=Rect(110, 220, 200, 0))
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))

    assert controller.drag.aspect_ratio == 200
    view.window.emit(POINTER_MOVE, PointerEvent(0, 0, shift=True))
    view.window.emit(POINTER_UP, PointerEvent(0, 0))

    image = view.node_at(IMAGE_POS)
    assert (image.width, image.height) == (200, MIN_SIZE)


def test_destroy_removes_handle_and_listeners_mid_drag():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    controller.pointer_down(PointerEvent(0, 0))
    view.window.emit(POINTER_MOVE, PointerEvent(60, 60))

    view.destroy()

    assert view.handles == []
    assert view.window.listener_count() == 0
    view.window.emit(POINTER_UP, PointerEvent(60, 60))
    assert view.transactions == []
    assert controller.state is ResizeState.IDLE


def test_rendered_box_converges_on_committed_size():
    view, controller = _view()
    view.select_node(IMAGE_POS)
    _drag(view, controller, [(33.4, 12.6)])

    box = view.node_dom(IMAGE_POS)
    image = view.node_at(IMAGE_POS)
    assert (box.rect.width, box.rect.height) == (image.width, image.height) == (233, 113)


def test_controllers_are_independent_per_surface():
    first_view, first = _view()
    second_view, second = _view()
    first_view.select_node(IMAGE_POS)

    assert first.state is ResizeState.SELECTED
    assert second.state is ResizeState.IDLE
    assert second_view.handles == [second.handle]


@pytest.mark.parametrize(
    "dx, dy, keep, expected",
    [
        (0, 0, False, (200, 100)),
        (2000, 2000, False, (1200, 1200)),
        (-1000, -1000, False, (50, 50)),
        (200, -40, True, (400, 200)),
        (2000, 0, True, (1200, 600)),
        (-190, 0, True, (50, 50)),
    ],
)
def test_compute_resize(dx, dy, keep, expected):
    assert compute_resize(200, 100, dx, dy, 2.0, keep) == expected


@pytest.mark.parametrize("value, expected", [(200.5, 201), (100.5, 101), (199.4, 199), (0.5, 1), (-0.5, 0), (42, 42)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
