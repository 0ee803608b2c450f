"""Relay between a browser review shell and a server-side host controller.

The shell page owns the iframe. It forwards everything the overlay posts as
``{"channel": "frame", "message": ...}`` and user actions as
``{"channel": "ui", "action": ...}``. Outgoing frame messages and state
snapshots travel back the same way.
"""

from pinup.host import HostController
from pinup.logger import get_logger
from pinup.models import HostState

logger = get_logger(__name__)


def frame_envelope(message: dict) -> dict:
    return {"channel": "frame", "message": message}


def state_envelope(state: HostState) -> dict:
    return {"channel": "state", "state": state.model_dump(by_alias=True, mode="json")}


def _string(envelope: dict, key: str):
    value = envelope.get(key)
    return value if isinstance(value, str) else None


async def handle_envelope(host: HostController, envelope) -> None:
    """Apply one shell envelope to the host; anything malformed is ignored"""
    if not isinstance(envelope, dict):
        return

    channel = envelope.get("channel")
    if channel == "frame":
        host.handle_message(envelope.get("message"))
        return
    if channel != "ui":
        logger.debug(f"Ignoring envelope on unknown channel: {channel!r}")
        return

    action = envelope.get("action")
    if action == "togglePanel":
        host.toggle_panel()
    elif action == "setPanel" and isinstance(envelope.get("open"), bool):
        host.set_panel_open(envelope["open"])
    elif action == "setDraft" and _string(envelope, "text") is not None:
        host.set_draft(envelope["text"])
    elif action == "submit":
        await host.submit_comment(_string(envelope, "text"))
    elif action == "cancel":
        host.cancel_authoring()
    elif action == "delete" and _string(envelope, "commentId"):
        await host.delete_comment(envelope["commentId"])
    elif action == "highlight" and "commentId" in envelope:
        comment_id = envelope["commentId"]
        if comment_id is None:
            host.clear_highlight()
        elif isinstance(comment_id, str):
            host.highlight(comment_id)
    elif action == "injectionFailed":
        host.report_injection_failure(_string(envelope, "reason") or "script injection blocked")
    else:
        logger.debug(f"Ignoring malformed ui action: {action!r}")
