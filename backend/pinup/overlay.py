"""Browser-side overlay injected into served prototype HTML.

The script is the in-browser counterpart of ``pinup.runtime``: same message
tags, same selector rules (generated from the active utility-class policy),
same dot placement. It is injected server-side, which only works because
prototypes are served from our own origin.
"""

import json

from bs4 import BeautifulSoup, Tag

from pinup.logger import get_logger
from pinup.models import MAX_ELEMENT_TEXT
from pinup.runtime import DOT_STYLES, HIGHLIGHT_CLASS, MARKER_ID_ATTR, STYLE_ID
from pinup.selectors import DEFAULT_POLICY, MARKER_CLASS, UtilityClassPolicy
from pinup.surface import ensure_skeleton

logger = get_logger(__name__)

SCRIPT_ID = "pinup-overlay"

OVERLAY_TEMPLATE = r"""
(function() {
  const CONFIG = __CONFIG__;
  const UTILITY_PATTERNS = CONFIG.utilityPatterns.map(p => new RegExp(p));
  let commentModeEnabled = false;
  let comments = [];
  const dots = new Map();
  let highlightedId = null;

  function post(message) {
    window.parent.postMessage(message, '*');
  }

  function meaningfulClasses(el) {
    return Array.from(el.classList)
      .filter(c => !UTILITY_PATTERNS.some(p => p.test(c)))
      .slice(0, 2);
  }

  function generateSelector(el) {
    const path = [];
    let current = el;
    while (current && current !== document.body && current.tagName !== 'HTML') {
      if (current.id) {
        path.unshift('#' + CSS.escape(current.id));
        break;
      }
      let segment = current.tagName.toLowerCase();
      const classes = meaningfulClasses(current);
      if (classes.length) segment += '.' + classes.map(c => CSS.escape(c)).join('.');
      const parent = current.parentElement;
      if (parent) {
        const same = Array.from(parent.children).filter(c => c.tagName === current.tagName);
        if (same.length > 1) segment += ':nth-of-type(' + (same.indexOf(current) + 1) + ')';
      }
      path.unshift(segment);
      current = current.parentElement;
    }
    return path.join(' > ');
  }

  function percent(offset, size) {
    if (!(size > 0)) return 0;
    return Math.max(0, Math.min(100, Math.round(100 * offset / size)));
  }

  function injectStyles() {
    if (document.getElementById(CONFIG.styleId)) return;
    const style = document.createElement('style');
    style.id = CONFIG.styleId;
    style.textContent = CONFIG.styles;
    document.head.appendChild(style);
  }

  function render(dot, comment, index) {
    dot.textContent = String(index + 1);
    dot.classList.toggle(CONFIG.highlightClass, comment.id === highlightedId);
    let el = null;
    try {
      el = document.querySelector(comment.selector);
    } catch (err) {
      el = null;
    }
    const rect = el && !el.classList.contains(CONFIG.markerClass) ? el.getBoundingClientRect() : null;
    if (!rect) {
      dot.style.display = 'none';
      return;
    }
    dot.style.left = (rect.left + window.scrollX + rect.width * comment.clickX / 100) + 'px';
    dot.style.top = (rect.top + window.scrollY + rect.height * comment.clickY / 100) + 'px';
    dot.style.display = commentModeEnabled ? 'flex' : 'none';
  }

  function updateDots() {
    const ids = new Set(comments.map(c => c.id));
    dots.forEach((dot, id) => {
      if (!ids.has(id)) {
        dot.remove();
        dots.delete(id);
      }
    });
    comments.forEach((comment, index) => {
      let dot = dots.get(comment.id);
      if (!dot) {
        dot = document.createElement('button');
        dot.type = 'button';
        dot.className = CONFIG.markerClass;
        dot.setAttribute(CONFIG.markerIdAttr, comment.id);
        document.body.appendChild(dot);
        dots.set(comment.id, dot);
      }
      render(dot, comment, index);
    });
  }

  window.addEventListener('message', function(e) {
    const data = e.data;
    if (!data || typeof data !== 'object') return;
    if (data.type === 'setCommentMode' && typeof data.enabled === 'boolean') {
      commentModeEnabled = data.enabled;
      if (commentModeEnabled) updateDots();
      else dots.forEach(dot => { dot.style.display = 'none'; });
    } else if (data.type === 'commentsUpdated' && Array.isArray(data.comments)) {
      comments = data.comments.filter(c =>
        c && typeof c.id === 'string' && typeof c.selector === 'string' &&
        typeof c.clickX === 'number' && typeof c.clickY === 'number');
      injectStyles();
      updateDots();
    } else if (data.type === 'setHighlight' && 'commentId' in data &&
               (data.commentId === null || typeof data.commentId === 'string')) {
      highlightedId = data.commentId;
      dots.forEach((dot, id) => dot.classList.toggle(CONFIG.highlightClass, id === highlightedId));
    }
  });

  window.addEventListener('resize', function() {
    if (commentModeEnabled) updateDots();
  });

  document.addEventListener('click', function(e) {
    const marker = e.target.closest && e.target.closest('.' + CONFIG.markerClass);
    if (marker) {
      e.preventDefault();
      e.stopPropagation();
      post({ type: 'dotClicked', commentId: marker.getAttribute(CONFIG.markerIdAttr) });
      return;
    }
    if (!commentModeEnabled) return;

    e.preventDefault();
    e.stopPropagation();
    const el = e.target;
    const rect = el.getBoundingClientRect();
    post({
      type: 'elementClicked',
      selector: generateSelector(el),
      elementText: (el.textContent || '').trim().slice(0, CONFIG.maxElementText),
      clickX: percent(e.clientX - rect.left, rect.width),
      clickY: percent(e.clientY - rect.top, rect.height),
      viewportWidth: window.innerWidth,
      viewportHeight: window.innerHeight
    });
  }, true);

  post({ type: 'ready' });
})();
"""


class OverlayInjectionError(Exception):
    """The document cannot take the overlay script"""


def overlay_script(policy: UtilityClassPolicy = DEFAULT_POLICY) -> str:
    """Render the overlay program for the given utility-class policy"""
    settings = {
        "utilityPatterns": list(policy.patterns),
        "markerClass": MARKER_CLASS,
        "markerIdAttr": MARKER_ID_ATTR,
        "highlightClass": HIGHLIGHT_CLASS,
        "styleId": STYLE_ID,
        "styles": DOT_STYLES,
        "maxElementText": MAX_ELEMENT_TEXT,
    }
    # keep "</script>" out of the inline payload
    payload = json.dumps(settings).replace("</", "<\\/")
    return OVERLAY_TEMPLATE.replace("__CONFIG__", payload)


def inject_overlay(html, policy: UtilityClassPolicy = DEFAULT_POLICY) -> str:
    """Return the document with the overlay script appended to <body>"""
    if isinstance(html, bytes):
        try:
            html = html.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OverlayInjectionError(f"Document is not UTF-8: {e}") from e

    document = BeautifulSoup(html, "html.parser")
    if document.find(True) is None:
        raise OverlayInjectionError("Document has no HTML elements")

    if document.find("script", id=SCRIPT_ID) is not None:
        return str(document)

    ensure_skeleton(document)
    script = document.new_tag("script", id=SCRIPT_ID)
    script.string = overlay_script(policy)
    body = document.body
    if not isinstance(body, Tag):
        raise OverlayInjectionError("Document has no <body>")
    body.append(script)

    logger.debug(f"Injected overlay into document ({len(html)} chars)")
    return str(document)
