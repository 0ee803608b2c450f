import asyncio

import pytest
import requests

from conftest import make_comment, store_comment
from pinup.models import Author, ElementClickData
from pinup.stores import (
    AUTHOR_HEADER,
    AUTHOR_TYPE_HEADER,
    ApiCommentStore,
    CommentStoreError,
    LocalCommentStore,
)

CLICK = ElementClickData(
    selector="main > button.cta",
    element_text="Buy",
    click_x=10,
    click_y=90,
    viewport_width=390,
    viewport_height=844,
)


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_local_store_round_trip():
    store = LocalCommentStore()
    ana = Author(name="Ana")

    async def scenario():
        comment = await store.create("proj", "v1", ana, CLICK, "Bigger please")
        listed = await store.list("proj", "v1")
        deleted = await store.delete(comment.id, ana)
        return comment, listed, deleted

    comment, listed, deleted = asyncio.run(scenario())

    assert comment.device_type == "mobile"
    assert [c.id for c in listed] == [comment.id]
    assert deleted


def test_local_store_refuses_foreign_delete():
    comment = store_comment("mine", "h1", author=Author(name="Ana"))
    store = LocalCommentStore()

    with pytest.raises(CommentStoreError):
        asyncio.run(store.delete(comment.id, Author(name="Bo")))

    assert not asyncio.run(store.delete("missing", Author(name="Ana")))


def test_local_store_rejects_blank_selector_or_text():
    store = LocalCommentStore()
    blank = CLICK.model_copy(update={"selector": ""})

    with pytest.raises(CommentStoreError):
        asyncio.run(store.create("proj", "v1", Author(), blank, "whole page looks off"))
    with pytest.raises(CommentStoreError):
        asyncio.run(store.create("proj", "v1", Author(), CLICK, "   "))

    assert asyncio.run(store.list("proj", "v1")) == []


def test_api_store_posts_camel_case_with_author_headers():
    created = make_comment("c1", CLICK.selector, click_x=10, click_y=90)
    session = FakeSession(FakeResponse(200, {"success": True, "comment": created.to_wire()}))
    store = ApiCommentStore("http://review.test/", timeout=5, session=session)

    comment = asyncio.run(
        store.create("proj", "v1", Author(name="Ana", type="admin"), CLICK, "Bigger")
    )

    assert comment == created
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://review.test/api/comments")
    assert kwargs["timeout"] == 5
    assert kwargs["headers"][AUTHOR_HEADER] == "Ana"
    assert kwargs["headers"][AUTHOR_TYPE_HEADER] == "admin"
    assert kwargs["json"]["elementSelector"] == "main > button.cta"
    assert kwargs["json"]["clickX"] == 10
    assert kwargs["json"]["projectId"] == "proj"


def test_api_store_lists_comments():
    listed = [make_comment("c2", "h2"), make_comment("c1", "h1")]
    session = FakeSession(FakeResponse(200, {"comments": [c.to_wire() for c in listed]}))
    store = ApiCommentStore("http://review.test", session=session)

    comments = asyncio.run(store.list("proj", "v1"))

    assert comments == listed
    method, url, kwargs = session.calls[0]
    assert kwargs["params"] == {"projectId": "proj", "versionId": "v1"}


def test_api_store_errors_become_store_errors():
    failing = ApiCommentStore(
        "http://review.test",
        session=FakeSession(FakeResponse(500, {"detail": "Failed to fetch comments"})),
    )
    unreachable = ApiCommentStore(
        "http://review.test",
        session=FakeSession(error=requests.ConnectionError("refused")),
    )

    with pytest.raises(CommentStoreError, match="Failed to fetch comments"):
        asyncio.run(failing.list("proj", "v1"))
    with pytest.raises(CommentStoreError, match="unreachable"):
        asyncio.run(unreachable.list("proj", "v1"))


def test_api_store_delete():
    gone = ApiCommentStore(
        "http://review.test", session=FakeSession(FakeResponse(404, {"detail": "Comment not found"}))
    )
    forbidden = ApiCommentStore(
        "http://review.test",
        session=FakeSession(FakeResponse(403, None, text="You can only delete your own comments")),
    )
    ok_session = FakeSession(FakeResponse(200, {"success": True}))
    ok = ApiCommentStore("http://review.test", session=ok_session)

    assert asyncio.run(gone.delete("c1", Author())) is False
    with pytest.raises(CommentStoreError, match="HTTP 403"):
        asyncio.run(forbidden.delete("c1", Author()))
    assert asyncio.run(ok.delete("c1", Author(name="Ana"))) is True
    assert ok_session.calls[0][:2] == ("DELETE", "http://review.test/api/comments/c1")
