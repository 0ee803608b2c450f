"""Comment store adapters used by the host controller.

The host only ever talks to the store through the async methods below, so
it can run against the in-process store or against a remote review API.
"""

import asyncio
from typing import Optional

import requests

import config
from pinup import comments as comment_db
from pinup.logger import get_logger
from pinup.models import Author, Comment, CreateCommentRequest, ElementClickData

logger = get_logger(__name__)

AUTHOR_HEADER = "X-Pinup-Author"
AUTHOR_TYPE_HEADER = "X-Pinup-Author-Type"


class CommentStoreError(Exception):
    """A list/create/delete call against the comment store failed"""


class LocalCommentStore:
    """Store backed by this process's in-memory database"""

    async def list(self, project_id: str, version_id: str) -> list[Comment]:
        return comment_db.get_comments(project_id, version_id)

    async def create(
        self,
        project_id: str,
        version_id: str,
        author: Author,
        click: ElementClickData,
        text: str,
    ) -> Comment:
        if not text.strip() or not click.selector.strip():
            raise CommentStoreError("text and elementSelector are required")
        request = CreateCommentRequest.from_click(project_id, version_id, click, text)
        return comment_db.create_comment(request, author)

    async def delete(self, comment_id: str, author: Author) -> bool:
        comment = comment_db.get_comment(comment_id)
        if comment is None:
            return False
        if not comment_db.can_delete_comment(author, comment):
            raise CommentStoreError("You can only delete your own comments")
        return comment_db.delete_comment(comment_id)


class ApiCommentStore:
    """Store backed by a review service's HTTP API"""

    def __init__(
        self,
        base_url: str = config.API_URL,
        timeout: float = config.API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, author: Optional[Author] = None) -> dict:
        headers = {"Content-Type": "application/json"}
        if author is not None:
            headers[AUTHOR_HEADER] = author.name
            headers[AUTHOR_TYPE_HEADER] = author.type
        return headers

    def _request(self, method: str, path: str, author: Optional[Author] = None, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(author), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"Comment API request failed: {method} {url}: {e}")
            raise CommentStoreError(f"Comment service unreachable: {e}") from e

        if response.status_code == 404 and method == "DELETE":
            return None

        if response.status_code != 200:
            detail = response.text
            try:
                detail = response.json().get("detail", detail)
            except ValueError:
                pass
            logger.error(f"Comment API error: HTTP {response.status_code}: {detail}")
            raise CommentStoreError(f"HTTP {response.status_code}: {detail}")

        return response.json()

    async def list(self, project_id: str, version_id: str) -> list[Comment]:
        data = await asyncio.to_thread(
            self._request,
            "GET",
            "/api/comments",
            params={"projectId": project_id, "versionId": version_id},
        )
        return [Comment(**c) for c in data.get("comments", [])]

    async def create(
        self,
        project_id: str,
        version_id: str,
        author: Author,
        click: ElementClickData,
        text: str,
    ) -> Comment:
        request = CreateCommentRequest.from_click(project_id, version_id, click, text)
        data = await asyncio.to_thread(
            self._request, "POST", "/api/comments", author, json=request.to_wire()
        )
        return Comment(**data["comment"])

    async def delete(self, comment_id: str, author: Author) -> bool:
        data = await asyncio.to_thread(
            self._request, "DELETE", f"/api/comments/{comment_id}", author
        )
        return bool(data and data.get("success"))
