"""Host controller: the parent side of the frame protocol.

Owns the authoritative comment list for one prototype version, the authoring
prompt, the comment panel and the highlight. It never touches the embedded
document; everything it wants shown there goes out as a message, and nothing
is sent until the embedded runtime has announced ``ready``.

Authoring is a small state machine::

    idle --elementClicked--> awaiting_author_input --submit--> submitting
      ^                          |  ^                              |
      +---------cancel-----------+  +----------failure-------------+
      +-------------------------success----------------------------+
"""

import asyncio
from typing import Callable, Optional

import config
from pinup.logger import get_logger
from pinup.models import Author, Comment, ElementClickData, HostState
from pinup.protocol import (
    CHILD_TAGS,
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
from pinup.stores import CommentStoreError

logger = get_logger(__name__)

IDLE = "idle"
AWAITING_AUTHOR_INPUT = "awaiting_author_input"
SUBMITTING = "submitting"


class HostController:
    def __init__(
        self,
        project_id: str,
        version_id: str,
        store,
        send_to_child: Callable[[dict], None],
        author: Optional[Author] = None,
        highlight_clear_seconds: float = config.HIGHLIGHT_CLEAR_SECONDS,
        on_change: Optional[Callable[[HostState], None]] = None,
    ):
        self.project_id = project_id
        self.version_id = version_id
        self.store = store
        self.author = author or Author()
        self.highlight_clear_seconds = highlight_clear_seconds
        self._send_to_child = send_to_child
        self._on_change = on_change

        self.phase = IDLE
        self.comments: list[Comment] = []
        self.comment_mode = False
        self.panel_open = False
        self.child_ready = False
        self.highlighted_id: Optional[str] = None
        self.pending_click: Optional[ElementClickData] = None
        self.draft = ""
        self.error: Optional[str] = None
        self.notice: Optional[str] = None
        self._highlight_timer: Optional[asyncio.TimerHandle] = None

    @property
    def unavailable(self) -> bool:
        return self.notice is not None

    def snapshot(self) -> HostState:
        return HostState(
            phase=self.phase,
            comment_mode=self.comment_mode,
            panel_open=self.panel_open,
            child_ready=self.child_ready,
            comments=list(self.comments),
            highlighted_id=self.highlighted_id,
            pending_click=self.pending_click,
            draft=self.draft,
            error=self.error,
            notice=self.notice,
        )

    def _changed(self):
        if self._on_change is not None:
            self._on_change(self.snapshot())

    # --- outgoing ---

    def _send(self, message):
        if not self.child_ready:
            # the full state goes out once the runtime reports ready
            logger.debug(f"Deferring {message.type} until the embedded runtime is ready")
            return
        self._send_to_child(dump_message(message))

    def _push_comments(self):
        self._send(
            CommentsUpdated(
                comments=[
                    CommentProjection(
                        id=c.id,
                        selector=c.element_selector,
                        click_x=float(c.click_x),
                        click_y=float(c.click_y),
                    )
                    for c in self.comments
                ]
            )
        )

    # --- incoming ---

    def handle_message(self, raw):
        """Handle one message from the embedded runtime; junk is ignored"""
        if self.unavailable:
            return

        message = parse_message(raw, allowed=CHILD_TAGS)
        if message is None:
            return

        if isinstance(message, Ready):
            self._on_ready()
        elif isinstance(message, ElementClicked):
            self._on_element_clicked(message)
        elif isinstance(message, DotClicked):
            self._on_dot_clicked(message.comment_id)

    def _on_ready(self):
        logger.info(f"Embedded runtime ready for {self.project_id}/{self.version_id}")
        self.child_ready = True
        self._send(SetCommentMode(enabled=self.comment_mode))
        self._push_comments()
        if self.highlighted_id is not None:
            self._send(SetHighlight(comment_id=self.highlighted_id))
        self._changed()

    def _on_element_clicked(self, message: ElementClicked):
        if not message.selector.strip():
            logger.debug("Ignoring element click with no selector")
            return
        if self.phase != IDLE:
            logger.debug(f"Ignoring element click while {self.phase}")
            return

        self.pending_click = ElementClickData(
            selector=message.selector,
            element_text=message.element_text,
            click_x=message.click_x,
            click_y=message.click_y,
            viewport_width=message.viewport_width,
            viewport_height=message.viewport_height,
        )
        self.draft = ""
        self.error = None
        self.phase = AWAITING_AUTHOR_INPUT
        self._changed()

    def _on_dot_clicked(self, comment_id: str):
        if not self.panel_open:
            self.set_panel_open(True)
        self.highlight(comment_id)

    # --- user actions ---

    def set_comment_mode(self, enabled: bool):
        if self.unavailable:
            enabled = False
        self.comment_mode = enabled
        self._send(SetCommentMode(enabled=enabled))
        self._changed()

    def set_panel_open(self, open: bool):
        """The panel and comment mode open and close together"""
        self.panel_open = open
        self.set_comment_mode(open)

    def toggle_panel(self):
        self.set_panel_open(not self.panel_open)

    def set_draft(self, text: str):
        if self.phase == AWAITING_AUTHOR_INPUT:
            self.draft = text
            self._changed()

    def cancel_authoring(self):
        if self.phase != AWAITING_AUTHOR_INPUT:
            return
        self.phase = IDLE
        self.pending_click = None
        self.draft = ""
        self.error = None
        self._changed()

    def highlight(self, comment_id: Optional[str]):
        self.highlighted_id = comment_id
        self._send(SetHighlight(comment_id=comment_id))
        self._schedule_highlight_clear()
        self._changed()

    def clear_highlight(self):
        self._cancel_highlight_clear()
        if self.highlighted_id is None:
            return
        self.highlighted_id = None
        self._send(SetHighlight(comment_id=None))
        self._changed()

    def _cancel_highlight_clear(self):
        if self._highlight_timer is not None:
            self._highlight_timer.cancel()
            self._highlight_timer = None

    def _schedule_highlight_clear(self):
        self._cancel_highlight_clear()
        if self.highlighted_id is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; highlight will not auto-clear")
            return
        self._highlight_timer = loop.call_later(
            self.highlight_clear_seconds, self.clear_highlight
        )

    def close(self):
        """Stop pending timers; the session is over"""
        self._cancel_highlight_clear()

    def report_injection_failure(self, reason: str):
        """The overlay could not be installed; annotation is off for this session"""
        logger.warning(
            f"Overlay injection failed for {self.project_id}/{self.version_id}: {reason}"
        )
        self.notice = f"Commenting is unavailable for this prototype: {reason}"
        self.comment_mode = False
        self.phase = IDLE
        self.pending_click = None
        self._cancel_highlight_clear()
        self._changed()

    # --- store round trips ---

    async def _refresh(self) -> bool:
        try:
            comments = await self.store.list(self.project_id, self.version_id)
        except CommentStoreError as e:
            logger.error(f"Failed to fetch comments: {e}", exc_info=True)
            self.error = "Failed to load comments"
            return False

        self.comments = list(comments)
        self._push_comments()
        return True

    async def load(self) -> bool:
        """Fetch the comment list and push it to the embedded runtime"""
        ok = await self._refresh()
        if ok:
            self.error = None
        self._changed()
        return ok

    async def submit_comment(self, text: Optional[str] = None) -> Optional[Comment]:
        if self.phase != AWAITING_AUTHOR_INPUT or self.pending_click is None:
            return None

        if text is not None:
            self.draft = text
        if not self.draft.strip():
            self.error = "Comment text is required"
            self._changed()
            return None

        self.phase = SUBMITTING
        self.error = None
        self._changed()

        try:
            comment = await self.store.create(
                self.project_id,
                self.version_id,
                self.author,
                self.pending_click,
                self.draft.strip(),
            )
        except CommentStoreError as e:
            logger.error(f"Failed to add comment: {e}", exc_info=True)
            self.phase = AWAITING_AUTHOR_INPUT
            self.error = "Failed to add comment"
            self._changed()
            return None

        self.phase = IDLE
        self.pending_click = None
        self.draft = ""
        await self._refresh()
        if not self.panel_open:
            self.set_panel_open(True)
        self._changed()
        return comment

    async def delete_comment(self, comment_id: str) -> bool:
        try:
            deleted = await self.store.delete(comment_id, self.author)
        except CommentStoreError as e:
            logger.error(f"Failed to delete comment {comment_id}: {e}", exc_info=True)
            self.error = str(e) or "Failed to delete comment"
            self._changed()
            return False

        if not deleted:
            self.error = "Comment not found"
            self._changed()
            return False

        self.error = None
        await self._refresh()
        self._changed()
        return True
