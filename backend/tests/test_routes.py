import pytest
from bs4 import BeautifulSoup
from fastapi import HTTPException
from fastapi.testclient import TestClient

import config
from conftest import store_comment
from main import app
from pinup.models import Author
from pinup.overlay import SCRIPT_ID
from pinup.routes import resolve_prototype_path

client = TestClient(app)

ADMIN = {"X-Pinup-Author": "Lead", "X-Pinup-Author-Type": "admin"}


def new_comment(**overrides):
    body = {
        "projectId": "proj",
        "versionId": "v1",
        "text": "Button is too small",
        "elementSelector": "main > button.cta",
        "elementText": "Start trial",
        "clickX": 40,
        "clickY": 60,
        "viewportWidth": 390,
        "viewportHeight": 844,
    }
    body.update(overrides)
    return body


@pytest.fixture
def prototypes(tmp_path, monkeypatch):
    version_dir = tmp_path / "proj" / "v1"
    (version_dir / "assets").mkdir(parents=True)
    (version_dir / "index.html").write_text(
        "<html><head><title>Proto</title></head><body><h1>Hello</h1></body></html>"
    )
    (version_dir / "assets" / "site.css").write_text("h1 { color: red; }")
    (version_dir / "legacy.html").write_bytes(b"<html><body>\xe9t\xe9</body></html>")
    (tmp_path / "secret.txt").write_text("nope")
    monkeypatch.setattr(config, "PROTOTYPES_DIR", str(tmp_path))
    return tmp_path


def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_comment():
    response = client.post(
        "/api/comments",
        json=new_comment(elementText="y" * 300),
        headers={"X-Pinup-Author": "Ana"},
    )

    assert response.status_code == 200
    comment = response.json()["comment"]
    assert comment["authorName"] == "Ana"
    assert comment["authorType"] == "client"
    assert comment["deviceType"] == "mobile"
    assert len(comment["elementText"]) == 100
    assert (comment["clickX"], comment["clickY"]) == (40, 60)


def test_create_comment_validation():
    assert client.post("/api/comments", json=new_comment(text="  ")).status_code == 400
    assert client.post("/api/comments", json=new_comment(clickX=140)).status_code == 422

    body = new_comment()
    del body["elementSelector"]
    assert client.post("/api/comments", json=body).status_code == 422


def test_list_comments_newest_first():
    first = store_comment("first", "h1")
    second = store_comment("second", "h2")

    response = client.get("/api/comments", params={"projectId": "proj", "versionId": "v1"})

    assert response.status_code == 200
    assert [c["id"] for c in response.json()["comments"]] == [second.id, first.id]
    assert client.get("/api/comments", params={"projectId": "proj"}).status_code == 400


def test_delete_comment_permissions():
    comment = store_comment("mine", "h1", author=Author(name="Ana"))
    url = f"/api/comments/{comment.id}"

    assert client.delete(url, headers={"X-Pinup-Author": "Bo"}).status_code == 403
    assert client.delete(url, headers={"X-Pinup-Author": "Ana"}).json() == {"success": True}
    assert client.delete(url, headers={"X-Pinup-Author": "Ana"}).status_code == 404


def test_admin_can_delete_any_comment():
    comment = store_comment("someone else's", "h1", author=Author(name="Ana"))

    response = client.delete(f"/api/comments/{comment.id}", headers=ADMIN)

    assert response.status_code == 200


def test_export_is_admin_only():
    store_comment("This is too small to tap", "main > button.cta")
    params = {"projectId": "proj", "versionId": "v1", "projectName": "Landing"}

    assert client.get("/api/export", params=params).status_code == 403

    response = client.get("/api/export", params=params, headers=ADMIN)
    assert response.status_code == 200
    assert "**Project:** Landing" in response.text
    assert "Increase tap target" in response.text
    assert 'filename="pinup-proj-v1-' in response.headers["content-disposition"]


def test_prototype_index_gets_overlay(prototypes):
    response = client.get("/prototypes/proj/v1/")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-cache"
    document = BeautifulSoup(response.text, "html.parser")
    assert document.find("h1").get_text() == "Hello"
    assert document.body.find("script", id=SCRIPT_ID) is not None


def test_prototype_assets_are_served_as_is(prototypes):
    response = client.get("/prototypes/proj/v1/assets/site.css")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/css")
    assert response.text == "h1 { color: red; }"
    assert "immutable" in response.headers["cache-control"]


def test_undecodable_html_is_served_without_overlay(prototypes):
    response = client.get("/prototypes/proj/v1/legacy.html")

    assert response.status_code == 200
    assert response.content == b"<html><body>\xe9t\xe9</body></html>"


def test_missing_prototype_file(prototypes):
    assert client.get("/prototypes/proj/v1/nope.html").status_code == 404
    assert client.get("/prototypes/proj/v9/").status_code == 404


def test_prototype_paths_cannot_escape(prototypes):
    assert resolve_prototype_path("proj", "v1", "index.html").name == "index.html"

    with pytest.raises(HTTPException) as exc:
        resolve_prototype_path("proj", "v1", "../../secret.txt")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException):
        resolve_prototype_path("..", "..", "secret.txt")


def test_review_relay_session():
    store_comment("existing", "h1")

    with client.websocket_connect("/ws/review/proj/v1?author=Ana") as ws:
        initial = ws.receive_json()
        assert initial["channel"] == "state"
        assert initial["state"]["childReady"] is False
        assert len(initial["state"]["comments"]) == 1

        ws.send_json({"channel": "frame", "message": {"type": "ready"}})
        mode = ws.receive_json()
        comments = ws.receive_json()
        state = ws.receive_json()
        assert mode == {"channel": "frame", "message": {"type": "setCommentMode", "enabled": False}}
        assert comments["message"]["type"] == "commentsUpdated"
        assert comments["message"]["comments"][0]["selector"] == "h1"
        assert state["state"]["childReady"] is True

        ws.send_json({"channel": "ui", "action": "togglePanel"})
        assert ws.receive_json()["message"] == {"type": "setCommentMode", "enabled": True}
        assert ws.receive_json()["state"]["panelOpen"] is True

        ws.send_json(
            {
                "channel": "frame",
                "message": {
                    "type": "elementClicked",
                    "selector": "main > button.cta",
                    "elementText": "Start",
                    "clickX": 25,
                    "clickY": 75,
                    "viewportWidth": 1440,
                    "viewportHeight": 900,
                },
            }
        )
        prompt = ws.receive_json()["state"]
        assert prompt["phase"] == "awaiting_author_input"
        assert prompt["pendingClick"]["clickX"] == 25
