"""Embedded runtime: the child side of the frame protocol.

Runs inside the prototype's rendering surface. It intercepts clicks while
comment mode is on, turns them into ``elementClicked`` messages, and keeps
one numbered dot marker per known comment positioned over its target
element. All of its state lives on one ``EmbeddedRuntime`` instance whose
lifecycle follows the document (``start`` on load, ``stop`` on unload), and
that state is only changed by incoming messages and surface events.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional

from bs4 import Tag

from pinup.logger import get_logger
from pinup.models import MAX_ELEMENT_TEXT
from pinup.protocol import (
    PARENT_TAGS,
    CommentProjection,
    CommentsUpdated,
    DotClicked,
    ElementClicked,
    Ready,
    SetCommentMode,
    SetHighlight,
    dump_message,
    parse_message,
)
from pinup.selectors import (
    DEFAULT_POLICY,
    MARKER_CLASS,
    UtilityClassPolicy,
    element_text,
    generate_selector,
    is_marker,
    resolve_selector,
)
from pinup.surface import PointerEvent, Surface

logger = get_logger(__name__)

STYLE_ID = "pinup-dot-styles"
MARKER_ID_ATTR = "data-pinup-id"
HIGHLIGHT_CLASS = "highlighted"

DOT_STYLES = """
.pinup-comment-dot {
  position: absolute;
  width: 24px;
  height: 24px;
  border-radius: 50%;
  background: #ec4899;
  border: 2px solid white;
  color: white;
  font-size: 11px;
  font-weight: bold;
  display: flex;
  align-items: center;
  justify-content: center;
  cursor: pointer;
  transform: translate(-50%, -50%);
  box-shadow: 0 2px 8px rgba(0,0,0,0.3);
  z-index: 999999;
}
.pinup-comment-dot.highlighted {
  background: #f472b6;
  transform: translate(-50%, -50%) scale(1.25);
}
"""


@dataclass
class DotProjection:
    """Render record for one comment's marker"""

    comment_id: str
    handle: Tag
    label: int
    highlighted: bool = False
    visible: bool = False
    left: Optional[float] = None
    top: Optional[float] = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def relative_click_position(rect, client_x: float, client_y: float) -> tuple[int, int]:
    """Click point as whole percentages of the element box, clamped to 0..100"""

    def axis(offset, size):
        if size <= 0:
            return 0
        return max(0, min(100, _round_half_up(100 * offset / size)))

    return axis(client_x - rect.left, rect.width), axis(client_y - rect.top, rect.height)


def dot_position(rect, scroll_x: float, scroll_y: float, click_x: float, click_y: float):
    """Document-space point for a dot, given the target's viewport-relative box"""
    left = rect.left + scroll_x + rect.width * click_x / 100
    top = rect.top + scroll_y + rect.height * click_y / 100
    return left, top


def _px(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".") + "px"


class EmbeddedRuntime:
    def __init__(
        self,
        surface: Surface,
        post_to_parent: Callable[[dict], None],
        policy: UtilityClassPolicy = DEFAULT_POLICY,
    ):
        self.surface = surface
        self.policy = policy
        self._post = post_to_parent

        self.comment_mode_enabled = False
        self.comments: list[CommentProjection] = []
        self.highlighted_id: Optional[str] = None
        self._dots: dict[str, DotProjection] = {}
        self._ready_sent = False

    # --- lifecycle ---

    def start(self):
        """Hook into the surface and announce readiness to the host"""
        if self._ready_sent:
            return
        self.surface.add_event_listener("click", self._on_click, capture=True)
        self.surface.add_event_listener("resize", self._on_resize)
        self._ready_sent = True
        self._send(Ready())
        logger.info("Embedded runtime ready")

    def stop(self):
        """Detach from the surface; the document is going away"""
        self.surface.remove_event_listener("click", self._on_click)
        self.surface.remove_event_listener("resize", self._on_resize)
        for dot in self._dots.values():
            dot.handle.decompose()
        self._dots.clear()
        self.comments = []
        self._ready_sent = False

    @property
    def ready(self) -> bool:
        return self._ready_sent

    def projection(self, comment_id: str) -> Optional[DotProjection]:
        return self._dots.get(comment_id)

    @property
    def dot_ids(self) -> list[str]:
        return list(self._dots)

    # --- protocol ---

    def _send(self, message):
        self._post(dump_message(message))

    def receive(self, raw):
        """Handle one message from the host; malformed input is ignored"""
        if not self._ready_sent:
            logger.debug("Dropping host message received before ready")
            return

        message = parse_message(raw, allowed=PARENT_TAGS)
        if message is None:
            return

        if isinstance(message, SetCommentMode):
            self._set_comment_mode(message.enabled)
        elif isinstance(message, CommentsUpdated):
            self._set_comments(message.comments)
        elif isinstance(message, SetHighlight):
            self._set_highlight(message.comment_id)

    def _set_comment_mode(self, enabled: bool):
        self.comment_mode_enabled = enabled
        if enabled:
            self.update_dots()
        else:
            for dot in self._dots.values():
                dot.visible = False
                self._render(dot)

    def _set_comments(self, comments):
        self.comments = list(comments)
        self._inject_styles()
        self.update_dots()

    def _set_highlight(self, comment_id: Optional[str]):
        self.highlighted_id = comment_id
        for dot in self._dots.values():
            dot.highlighted = dot.comment_id == comment_id
            self._render(dot)

    # --- dots ---

    def _inject_styles(self):
        document = self.surface.document
        if document.find(id=STYLE_ID) is not None:
            return
        style = document.new_tag("style", id=STYLE_ID)
        style.string = DOT_STYLES
        self.surface.head.append(style)

    def _create_dot(self, comment_id: str) -> Tag:
        handle = self.surface.document.new_tag("button")
        handle["class"] = [MARKER_CLASS]
        handle[MARKER_ID_ATTR] = comment_id
        handle["type"] = "button"
        self.surface.body.append(handle)
        return handle

    def update_dots(self):
        """Reconcile markers with the current comment list, then place them"""
        current_ids = {c.id for c in self.comments}
        for comment_id in [i for i in self._dots if i not in current_ids]:
            self._dots.pop(comment_id).handle.decompose()

        for index, comment in enumerate(self.comments):
            dot = self._dots.get(comment.id)
            if dot is None:
                dot = DotProjection(comment.id, self._create_dot(comment.id), index + 1)
                self._dots[comment.id] = dot
            dot.label = index + 1
            dot.highlighted = comment.id == self.highlighted_id

        self.position_dots()

    def position_dots(self):
        """Recompute every marker position from the live document.

        Safe to call at any time: it only reads the latest comment list and
        the document, and rewrites each marker from scratch.
        """
        for comment in self.comments:
            dot = self._dots.get(comment.id)
            if dot is None:
                continue
            self._position(dot, comment)
            self._render(dot)

    def _position(self, dot: DotProjection, comment: CommentProjection):
        element = resolve_selector(self.surface.document, comment.selector)
        rect = None
        if element is not None and not is_marker(element):
            rect = self.surface.get_bounding_client_rect(element)

        if rect is None:
            logger.debug(f"Selector for comment {comment.id} did not resolve")
            dot.visible = False
            return

        dot.left, dot.top = dot_position(
            rect,
            self.surface.scroll_x,
            self.surface.scroll_y,
            comment.click_x,
            comment.click_y,
        )
        dot.visible = self.comment_mode_enabled

    def _render(self, dot: DotProjection):
        handle = dot.handle
        handle.string = str(dot.label)
        handle["class"] = [MARKER_CLASS, HIGHLIGHT_CLASS] if dot.highlighted else [MARKER_CLASS]
        style = "display:flex" if dot.visible else "display:none"
        if dot.left is not None:
            style += f";left:{_px(dot.left)};top:{_px(dot.top)}"
        handle["style"] = style

    # --- surface events ---

    def _marker_for(self, target) -> Optional[Tag]:
        if is_marker(target):
            return target
        return target.find_parent(class_=MARKER_CLASS)

    def _on_click(self, event: PointerEvent):
        marker = self._marker_for(event.target)
        if marker is not None:
            event.prevent_default()
            event.stop_propagation()
            self._send(DotClicked(comment_id=marker[MARKER_ID_ATTR]))
            return

        if not self.comment_mode_enabled:
            return

        event.prevent_default()
        event.stop_propagation()

        element = event.target
        rect = self.surface.get_bounding_client_rect(element)
        click_x, click_y = (0, 0)
        if rect is not None:
            click_x, click_y = relative_click_position(rect, event.client_x, event.client_y)

        self._send(
            ElementClicked(
                selector=generate_selector(element, self.policy),
                element_text=element_text(element, MAX_ELEMENT_TEXT),
                click_x=click_x,
                click_y=click_y,
                viewport_width=int(self.surface.viewport_width),
                viewport_height=int(self.surface.viewport_height),
            )
        )

    def _on_resize(self, event: PointerEvent):
        if self.comment_mode_enabled:
            self.position_dots()
