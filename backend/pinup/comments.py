"""Comment persistence on top of the in-memory store"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pinup import db
from pinup.logger import get_logger
from pinup.models import (
    MAX_ELEMENT_TEXT,
    Author,
    Comment,
    CreateCommentRequest,
    get_device_type,
)

logger = get_logger(__name__)


def comment_key(comment_id: str) -> str:
    return f"comment:{comment_id}"


def version_key(project_id: str, version_id: str) -> str:
    return f"project:{project_id}:version:{version_id}:comments"


def create_comment(request: CreateCommentRequest, author: Author) -> Comment:
    """Create and index a new comment"""
    comment = Comment(
        id=str(uuid.uuid4()),
        project_id=request.project_id,
        version_id=request.version_id,
        created_at=datetime.now(timezone.utc).isoformat(),
        author_name=author.name,
        author_type=author.type,
        text=request.text,
        element_selector=request.element_selector,
        element_text=request.element_text[:MAX_ELEMENT_TEXT],
        click_x=request.click_x,
        click_y=request.click_y,
        viewport_width=request.viewport_width,
        viewport_height=request.viewport_height,
        device_type=get_device_type(request.viewport_width),
    )

    db.set(comment_key(comment.id), comment.model_dump())
    db.sadd(version_key(comment.project_id, comment.version_id), comment.id)

    logger.info(
        f"Created comment {comment.id} on {comment.project_id}/{comment.version_id}"
    )
    return comment


def get_comment(comment_id: str) -> Optional[Comment]:
    data = db.get(comment_key(comment_id))
    if not data:
        return None
    return Comment(**data)


def get_comments(project_id: str, version_id: str) -> list[Comment]:
    """All comments for a project version, newest first"""
    indexed = []
    for position, comment_id in enumerate(db.smembers(version_key(project_id, version_id))):
        comment = get_comment(comment_id)
        if comment is not None:
            indexed.append((comment.created_at, position, comment))

    # UTC ISO timestamps sort chronologically; insertion order breaks ties
    indexed.sort(key=lambda entry: entry[:2], reverse=True)
    return [entry[2] for entry in indexed]


def delete_comment(comment_id: str) -> bool:
    comment = get_comment(comment_id)
    if not comment:
        return False

    db.delete(comment_key(comment_id))
    db.srem(version_key(comment.project_id, comment.version_id), comment_id)
    logger.info(f"Deleted comment {comment_id}")
    return True


def get_comment_count(project_id: str, version_id: str) -> int:
    return len(db.smembers(version_key(project_id, version_id)))


def can_delete_comment(author: Author, comment: Comment) -> bool:
    """Admins may delete anything, clients only their own comments"""
    if author.type == "admin":
        return True
    return author.name == comment.author_name
