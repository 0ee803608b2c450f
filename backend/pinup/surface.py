"""Rendering surface for a prototype document.

A surface is what the embedded runtime sees of the page it lives in: the
parsed document, the viewport, the scroll offset, element layout boxes and
event dispatch. Layout is supplied from outside (a browser reporting
``getBoundingClientRect`` results, or a test) via ``set_box``; the surface
itself does not lay anything out.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from bs4 import BeautifulSoup, Doctype, Tag

from pinup.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Box:
    left: float
    top: float
    width: float
    height: float

    def shifted(self, dx: float, dy: float) -> "Box":
        return Box(self.left + dx, self.top + dy, self.width, self.height)

    @property
    def center(self) -> tuple[float, float]:
        return self.left + self.width / 2, self.top + self.height / 2


class PointerEvent:
    def __init__(self, type: str, target: Tag, client_x: float, client_y: float):
        self.type = type
        self.target = target
        self.client_x = client_x
        self.client_y = client_y
        self.default_prevented = False
        self.propagation_stopped = False

    def prevent_default(self):
        self.default_prevented = True

    def stop_propagation(self):
        self.propagation_stopped = True


def ensure_skeleton(document: BeautifulSoup):
    """Make sure the document has <html>, <head> and <body>"""
    html = document.find("html")
    if html is None:
        html = document.new_tag("html")
        for child in list(document.contents):
            if isinstance(child, Doctype):
                continue
            html.append(child.extract())
        document.append(html)

    if html.find("body", recursive=False) is None:
        body = document.new_tag("body")
        for child in list(html.contents):
            if isinstance(child, Tag) and child.name == "head":
                continue
            body.append(child.extract())
        html.append(body)

    if html.find("head", recursive=False) is None:
        html.insert(0, document.new_tag("head"))


class Surface:
    """A document plus the viewport state a browser would give it"""

    def __init__(self, html: str, viewport_width: int = 1440, viewport_height: int = 900):
        self.document = BeautifulSoup(html, "html.parser")
        ensure_skeleton(self.document)
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.scroll_x = 0.0
        self.scroll_y = 0.0
        # hrefs followed by clicks whose default action was not prevented
        self.navigations: list[str] = []
        self._boxes: dict[int, tuple[Tag, Box]] = {}
        self._listeners: dict[str, list[tuple[Callable, bool]]] = {}

    @property
    def body(self) -> Tag:
        return self.document.body

    @property
    def head(self) -> Tag:
        return self.document.head

    # --- layout ---

    def set_box(self, element: Tag, left: float, top: float, width: float, height: float):
        """Record an element's box in document coordinates"""
        self._boxes[id(element)] = (element, Box(left, top, width, height))

    def clear_box(self, element: Tag):
        self._boxes.pop(id(element), None)

    def is_attached(self, element: Tag) -> bool:
        node = element
        while node is not None:
            if node is self.document:
                return True
            node = node.parent
        return False

    def get_bounding_client_rect(self, element: Tag) -> Optional[Box]:
        """Viewport-relative box, or None for detached or unlaid-out elements"""
        entry = self._boxes.get(id(element))
        if entry is None or entry[0] is not element or not self.is_attached(element):
            return None
        return entry[1].shifted(-self.scroll_x, -self.scroll_y)

    def scroll_to(self, x: float, y: float):
        self.scroll_x = max(0.0, float(x))
        self.scroll_y = max(0.0, float(y))

    # --- events ---

    def add_event_listener(self, type: str, handler: Callable, capture: bool = False):
        self._listeners.setdefault(type, []).append((handler, capture))

    def remove_event_listener(self, type: str, handler: Callable):
        self._listeners[type] = [
            (h, c) for h, c in self._listeners.get(type, []) if h != handler
        ]

    def _dispatch(self, event):
        listeners = self._listeners.get(event.type, [])
        # capturing listeners run before bubbling ones
        for handler, capture in sorted(listeners, key=lambda entry: not entry[1]):
            if event.propagation_stopped:
                break
            handler(event)
        return event

    def resize(self, width: int, height: int):
        self.viewport_width = width
        self.viewport_height = height
        self._dispatch(PointerEvent("resize", self.body, 0, 0))

    def click(
        self,
        target: Tag,
        client_x: Optional[float] = None,
        client_y: Optional[float] = None,
    ) -> PointerEvent:
        """Dispatch a click on target; defaults to the center of its box"""
        if client_x is None or client_y is None:
            rect = self.get_bounding_client_rect(target) or Box(0, 0, 0, 0)
            client_x, client_y = rect.center

        event = self._dispatch(PointerEvent("click", target, client_x, client_y))

        if not event.default_prevented:
            link = target if target.name == "a" else target.find_parent("a")
            if link is not None and link.get("href"):
                self.navigations.append(link["href"])
                logger.debug(f"Followed link to {link['href']}")
        return event
