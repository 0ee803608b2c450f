"""Frame-boundary message protocol between the host controller and the embedded runtime.

Every message is a flat JSON record tagged by its ``type`` field. The set of
tags is closed: anything that does not validate against one of the models
below (unknown tag, missing field, wrong type) is dropped by ``parse_message``
rather than raised, so neither side can be crashed by the other.
"""

import json
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    TypeAdapter,
    ValidationError,
    conint,
)

from pinup.logger import get_logger
from pinup.models import CamelModel

logger = get_logger(__name__)

Percent = conint(strict=True, ge=0, le=100)


def _number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    return value


RelativePosition = Annotated[float, BeforeValidator(_number), Field(ge=0, le=100)]
Pixels = conint(strict=True, ge=0)


class ProtocolMessage(CamelModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# --- child -> parent ---


class Ready(ProtocolMessage):
    type: Literal["ready"] = "ready"


class ElementClicked(ProtocolMessage):
    type: Literal["elementClicked"] = "elementClicked"
    selector: StrictStr
    element_text: StrictStr
    click_x: Percent
    click_y: Percent
    viewport_width: Pixels
    viewport_height: Pixels


class DotClicked(ProtocolMessage):
    type: Literal["dotClicked"] = "dotClicked"
    comment_id: StrictStr


# --- parent -> child ---


class CommentProjection(ProtocolMessage):
    """The slice of a comment the embedded runtime needs to place its dot"""

    id: StrictStr
    selector: StrictStr
    click_x: RelativePosition
    click_y: RelativePosition


class SetCommentMode(ProtocolMessage):
    type: Literal["setCommentMode"] = "setCommentMode"
    enabled: StrictBool


class CommentsUpdated(ProtocolMessage):
    type: Literal["commentsUpdated"] = "commentsUpdated"
    comments: list[CommentProjection] = Field(default_factory=list)


class SetHighlight(ProtocolMessage):
    type: Literal["setHighlight"] = "setHighlight"
    # required, but may be null to clear
    comment_id: Optional[StrictStr]


ChildMessage = Union[Ready, ElementClicked, DotClicked]
ParentMessage = Union[SetCommentMode, CommentsUpdated, SetHighlight]
Message = Union[ChildMessage, ParentMessage]

CHILD_TAGS = frozenset(["ready", "elementClicked", "dotClicked"])
PARENT_TAGS = frozenset(["setCommentMode", "commentsUpdated", "setHighlight"])

_adapter = TypeAdapter(
    Annotated[
        Union[
            Ready,
            ElementClicked,
            DotClicked,
            SetCommentMode,
            CommentsUpdated,
            SetHighlight,
        ],
        Field(discriminator="type"),
    ]
)


def parse_message(raw, allowed: frozenset | None = None) -> Optional[Message]:
    """Validate a raw wire record (dict or JSON text) into a protocol message.

    Returns None for anything malformed, or whose tag is not in ``allowed``.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("Dropping non-JSON protocol payload")
            return None

    if not isinstance(raw, dict):
        return None

    tag = raw.get("type")
    if not isinstance(tag, str):
        return None
    if allowed is not None and tag not in allowed:
        logger.debug(f"Dropping message with unexpected tag: {tag}")
        return None

    try:
        return _adapter.validate_python(raw)
    except ValidationError as e:
        logger.debug(f"Dropping malformed {tag} message: {e.error_count()} error(s)")
        return None


def dump_message(message: ProtocolMessage) -> dict:
    return message.model_dump(by_alias=True, mode="json")
