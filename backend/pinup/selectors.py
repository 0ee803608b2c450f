"""
CSS selector generation and resolution for elements of a prototype document.

Elements are BeautifulSoup tags. Generated selectors are readable paths such
as ``section.Pricing > div.PlanCard:nth-of-type(2) > h3`` that stop at the
nearest ancestor carrying an id. Utility classes (atomic CSS such as ``p-4``
or ``md:flex``) are dropped because they churn between builds and carry no
identity; which classes count as utilities is a replaceable policy.
"""

import re
from typing import Iterable, Optional

import soupsieve
from bs4 import BeautifulSoup, Tag

from pinup.logger import get_logger

logger = get_logger(__name__)

# Tuned for Tailwind-style utility CSS
DEFAULT_UTILITY_PATTERNS = (
    r"^flex$",
    r"^grid$",
    r"^p-",
    r"^m-",
    r"^w-",
    r"^h-",
    r"^text-",
    r"^bg-",
    r"^border-",
    r"^rounded-",
    r"^shadow-",
    r"^font-",
    r"^opacity-",
    r"^transition-",
    r"^transform-",
    r"^hover:",
    r"^focus:",
    r"^active:",
    r"^sm:",
    r"^md:",
    r"^lg:",
    r"^xl:",
    r"^2xl:",
    r"^gap-",
    r"^space-",
    r"^items-",
    r"^justify-",
    r"^self-",
    r"^order-",
    r"^col-",
    r"^row-",
    r"^overflow-",
    r"^z-",
    r"^top-",
    r"^right-",
    r"^bottom-",
    r"^left-",
    r"^inset-",
    r"^absolute$",
    r"^relative$",
    r"^fixed$",
    r"^sticky$",
    r"^static$",
    r"^block$",
    r"^inline-",
    r"^hidden$",
    r"^visible$",
    r"^invisible$",
)

MAX_MEANINGFUL_CLASSES = 2

# Markers the runtime adds to the document; never a comment target
MARKER_CLASS = "pinup-comment-dot"


class UtilityClassPolicy:
    """Decides which class names are utilities and which carry identity."""

    def __init__(self, patterns: Iterable[str] = DEFAULT_UTILITY_PATTERNS):
        self.patterns = tuple(patterns)
        self._compiled = [re.compile(p) for p in self.patterns]

    def is_utility(self, class_name: str) -> bool:
        return any(p.search(class_name) for p in self._compiled)

    def meaningful(self, classes: Iterable[str], limit: int = MAX_MEANINGFUL_CLASSES):
        return [c for c in classes if c and not self.is_utility(c)][:limit]


DEFAULT_POLICY = UtilityClassPolicy()


def policy_from_config(patterns: list[str]) -> UtilityClassPolicy:
    """Build the active policy, falling back to the default denylist"""
    if not patterns:
        return DEFAULT_POLICY
    logger.info(f"Using {len(patterns)} custom utility class patterns")
    return UtilityClassPolicy(patterns)


def get_meaningful_classes(element: Tag, policy: UtilityClassPolicy = DEFAULT_POLICY):
    return policy.meaningful(element.get("class") or [])


def _is_document_root(element) -> bool:
    return (
        element is None
        or isinstance(element, BeautifulSoup)
        or element.name in ("body", "html")
    )


def _segment(element: Tag, policy: UtilityClassPolicy) -> str:
    selector = element.name

    classes = get_meaningful_classes(element, policy)
    if classes:
        selector += "." + ".".join(soupsieve.escape(c) for c in classes)

    parent = element.parent
    if parent is not None:
        # identity, not equality: bs4 compares tags structurally
        siblings = parent.find_all(element.name, recursive=False)
        if len(siblings) > 1:
            index = next(i for i, s in enumerate(siblings) if s is element) + 1
            selector += f":nth-of-type({index})"

    return selector


def generate_selector(element: Tag, policy: UtilityClassPolicy = DEFAULT_POLICY) -> str:
    """Build a selector path from the element up to, but excluding, <body>."""
    path = []
    current = element

    while not _is_document_root(current):
        element_id = current.get("id")
        if element_id:
            path.insert(0, "#" + soupsieve.escape(element_id))
            break

        path.insert(0, _segment(current, policy))
        current = current.parent

    return " > ".join(path)


def resolve_selector(root: Tag, selector: str) -> Optional[Tag]:
    """Find the first element matching selector, or None.

    Not finding anything is an expected state (content not rendered yet, or
    changed since the comment was made), so invalid selectors also give None.
    """
    if not selector or not selector.strip():
        return None
    try:
        return root.select_one(selector)
    except (soupsieve.SelectorSyntaxError, NotImplementedError):
        # pseudo-elements and at-rules are not matchable
        logger.debug(f"Unparseable selector: {selector!r}")
        return None


def element_text(element: Tag, limit: int = 100) -> str:
    """Trimmed text content, truncated for context display"""
    return element.get_text().strip()[:limit]


def is_marker(element) -> bool:
    return isinstance(element, Tag) and MARKER_CLASS in (element.get("class") or [])
