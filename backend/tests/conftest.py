import pytest

from pinup import db
from pinup.models import Author, Comment, CreateCommentRequest
from pinup import comments as comment_db


@pytest.fixture(autouse=True)
def clean_db():
    db.clear()
    yield
    db.clear()


def make_comment(comment_id, selector, click_x=50, click_y=50, **overrides):
    data = {
        "id": comment_id,
        "project_id": "proj",
        "version_id": "v1",
        "created_at": "2026-01-01T00:00:00+00:00",
        "author_name": "Ana",
        "author_type": "client",
        "text": f"Feedback on {selector}",
        "element_selector": selector,
        "element_text": "",
        "click_x": click_x,
        "click_y": click_y,
        "viewport_width": 1440,
        "viewport_height": 900,
        "device_type": "desktop",
    }
    data.update(overrides)
    return Comment(**data)


def store_comment(text, selector, author=None, **overrides):
    fields = {
        "project_id": "proj",
        "version_id": "v1",
        "text": text,
        "element_selector": selector,
        "element_text": "",
        "click_x": 50,
        "click_y": 50,
        "viewport_width": 1440,
        "viewport_height": 900,
    }
    fields.update(overrides)
    return comment_db.create_comment(
        CreateCommentRequest(**fields), author or Author(name="Ana")
    )
