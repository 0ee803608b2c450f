import mimetypes
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, WebSocket
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse

import config
from pinup import comments as comment_db
from pinup.export import export_filename, render_markdown
from pinup.host import HostController
from pinup.logger import get_logger
from pinup.models import (
    Author,
    CommentListResponse,
    CreateCommentRequest,
    CreateCommentResponse,
)
from pinup.overlay import OverlayInjectionError, inject_overlay
from pinup.relay import frame_envelope, handle_envelope, state_envelope
from pinup.selectors import policy_from_config
from pinup.stores import LocalCommentStore
from pinup.websocket_manager import ws_manager

logger = get_logger(__name__)


router = APIRouter()

HTML_SUFFIXES = (".html", ".htm")


def author_from(name: Optional[str], user_type: Optional[str]) -> Author:
    """Author context for a request; a session layer would supply this"""
    return Author(
        name=(name or "").strip() or "Anonymous",
        type="admin" if user_type == "admin" else "client",
    )


def require_ids(project_id: Optional[str], version_id: Optional[str]):
    if not project_id or not version_id:
        raise HTTPException(
            status_code=400, detail="projectId and versionId are required"
        )


@router.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "PinUp review API is running"}


@router.get("/api/comments")
async def list_comments(
    project_id: Optional[str] = Query(None, alias="projectId"),
    version_id: Optional[str] = Query(None, alias="versionId"),
):
    """Get all comments for a project version, newest first"""
    require_ids(project_id, version_id)
    try:
        comments = comment_db.get_comments(project_id, version_id)
        return CommentListResponse(comments=comments).to_wire()
    except Exception as e:
        logger.error(f"Error fetching comments: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch comments")


@router.post("/api/comments")
async def create_comment(
    request: CreateCommentRequest,
    x_pinup_author: Optional[str] = Header(None),
    x_pinup_author_type: Optional[str] = Header(None),
):
    """Create a new comment"""
    if not request.text.strip() or not request.element_selector.strip():
        raise HTTPException(
            status_code=400, detail="text and elementSelector are required"
        )

    try:
        author = author_from(x_pinup_author, x_pinup_author_type)
        comment = comment_db.create_comment(request, author)
        return CreateCommentResponse(success=True, comment=comment).to_wire()
    except Exception as e:
        logger.error(f"Error creating comment: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create comment")


@router.delete("/api/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    x_pinup_author: Optional[str] = Header(None),
    x_pinup_author_type: Optional[str] = Header(None),
):
    """Delete a comment"""
    try:
        comment = comment_db.get_comment(comment_id)
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")

        author = author_from(x_pinup_author, x_pinup_author_type)
        if not comment_db.can_delete_comment(author, comment):
            raise HTTPException(
                status_code=403, detail="You can only delete your own comments"
            )

        if not comment_db.delete_comment(comment_id):
            raise HTTPException(status_code=500, detail="Failed to delete comment")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting comment {comment_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete comment")


@router.get("/api/export")
async def export_comments(
    project_id: Optional[str] = Query(None, alias="projectId"),
    version_id: Optional[str] = Query(None, alias="versionId"),
    project_name: Optional[str] = Query(None, alias="projectName"),
    version_label: Optional[str] = Query(None, alias="versionLabel"),
    x_pinup_author: Optional[str] = Header(None),
    x_pinup_author_type: Optional[str] = Header(None),
):
    """Export a version's comments as markdown (admins only)"""
    require_ids(project_id, version_id)

    author = author_from(x_pinup_author, x_pinup_author_type)
    if author.type != "admin":
        raise HTTPException(status_code=403, detail="Export is only available to admins")

    try:
        comments = comment_db.get_comments(project_id, version_id)
        markdown = render_markdown(
            project_name or project_id, version_label or version_id, comments
        )
        filename = export_filename(project_id, version_id)
        return PlainTextResponse(
            markdown,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as e:
        logger.error(f"Error exporting comments: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to export comments")


def resolve_prototype_path(project_id: str, version_id: str, file_path: str) -> Path:
    """Map a request path onto the prototypes directory, refusing escapes"""
    root = Path(config.PROTOTYPES_DIR).resolve()
    version_dir = (root / project_id / version_id).resolve()
    target = (version_dir / file_path).resolve()

    if not version_dir.is_relative_to(root) or not target.is_relative_to(version_dir):
        raise HTTPException(status_code=404, detail="File not found")

    if target.is_dir():
        target = target / "index.html"
    if not target.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return target


@router.get("/prototypes/{project_id}/{version_id}/{file_path:path}")
def serve_prototype(project_id: str, version_id: str, file_path: str):
    """Serve a prototype file; HTML documents get the comment overlay"""
    target = resolve_prototype_path(project_id, version_id, file_path)

    if target.suffix.lower() not in HTML_SUFFIXES:
        media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        return FileResponse(
            target,
            media_type=media_type,
            headers={"Cache-Control": "public, max-age=31536000, immutable"},
        )

    raw = target.read_bytes()
    try:
        html = inject_overlay(raw, policy_from_config(config.UTILITY_CLASS_PATTERNS))
    except OverlayInjectionError as e:
        logger.warning(f"Serving {target} without overlay: {e}")
        return HTMLResponse(raw, headers={"Cache-Control": "no-cache"})

    return HTMLResponse(html, headers={"Cache-Control": "no-cache"})


@router.websocket("/ws/review/{project_id}/{version_id}")
async def review_relay(websocket: WebSocket, project_id: str, version_id: str):
    """Run a host controller for one review shell connection"""
    connection_id = str(uuid.uuid4())
    await ws_manager.connect(connection_id, websocket)

    author = author_from(
        websocket.query_params.get("author"),
        websocket.query_params.get("authorType"),
    )
    host = HostController(
        project_id,
        version_id,
        LocalCommentStore(),
        lambda message: ws_manager.post(connection_id, frame_envelope(message)),
        author=author,
        on_change=lambda state: ws_manager.post(connection_id, state_envelope(state)),
    )

    try:
        await host.load()
        while True:
            envelope = await ws_manager.receive_message(connection_id)
            if envelope is None:
                break
            await handle_envelope(host, envelope)
    finally:
        host.close()
        await ws_manager.flush()
        await ws_manager.disconnect(connection_id)
