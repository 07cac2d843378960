"""Tests for request handling: API dispatch, auth and static files."""

import json

import pytest
from fastapi.testclient import TestClient

from tontoo.web.app import create_app
from tontoo.web.declarations import ServerDeclaration
from tontoo.web.handler import RequestHandler, next_id

API_SOURCE = """
webAPI: "news-list" {
  "type": "GET",
  "data": "news.json",
  "webserverid": "webserver1",
  "line": "/news/"
}
webAPI: "news-item" {
  "type": "get",
  "data": "news.json",
  "webserverid": "webserver1",
  "line": "/news/$ID"
}
webAPI: "news-create" {
  "type": "POST",
  "data": "news.json",
  "webserverid": "webserver1",
  "user": "true",
  "line": "/news/"
}
webAPI: "posts" {
  "type": "POST",
  "data": "$DATA_DIR/posts.json",
  "webserverid": "webserver1",
  "line": "/posts/"
}
webAPI: "ping" {
  "type": "GET",
  "data": "ping.json",
  "webserverid": "webserver1",
  "line": "/ping/"
}
webAPI: "only-item" {
  "type": "GET",
  "data": "news.json",
  "webserverid": "other",
  "line": "/news/$ID"
}
"""


@pytest.fixture
def site(ctx, workspace):
    public = workspace / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>home</h1>")
    (public / "404.html").write_text("<h1>missing</h1>")
    (public / "style.css").write_text("body { margin: 0 }")
    (public / "logo.bin").write_bytes(b"\x00\x01")
    (workspace / "data").mkdir()
    ctx.run_source(API_SOURCE, "Main.tont")
    ctx.variables["DATA_DIR"] = "data"
    return ctx


def make_client(ctx, **overrides) -> TestClient:
    return TestClient(create_app(RequestHandler(ctx, ServerDeclaration(**overrides))))


@pytest.fixture
def client(site):
    return make_client(site)


def write_json(path, payload) -> None:
    path.write_text(json.dumps(payload))


# ---------------------------------------------------------------------------
# API dispatch
# ---------------------------------------------------------------------------


def test_get_missing_data_file_returns_empty_array(client) -> None:
    response = client.get("/api/ping/")
    assert response.status_code == 200
    assert response.text == "[]"


def test_posts_get_sequential_ids(client, workspace) -> None:
    first = client.post("/api/posts/", json={"title": "a"})
    second = client.post("/api/posts/", json={"title": "b"})
    assert (first.status_code, first.json()) == (201, {"title": "a", "id": 1})
    assert (second.status_code, second.json()) == (201, {"title": "b", "id": 2})
    stored = json.loads((workspace / "data" / "posts.json").read_text())
    assert [entry["id"] for entry in stored] == [1, 2]
    assert "author" not in stored[0]


def test_post_continues_after_highest_id(client, workspace) -> None:
    write_json(workspace / "data" / "posts.json", [{"id": 5, "title": "old"}])
    response = client.post("/api/posts/", json={"title": "new"})
    assert response.json()["id"] == 6


def test_data_path_is_substituted_per_request(client, site, workspace) -> None:
    (workspace / "archive").mkdir()
    site.variables["DATA_DIR"] = "archive"
    client.post("/api/posts/", json={"title": "moved"})
    assert (workspace / "archive" / "posts.json").exists()
    assert not (workspace / "data" / "posts.json").exists()


def test_dynamic_route_returns_single_record(client, workspace) -> None:
    write_json(workspace / "news.json", [{"id": 5, "title": "five"}, {"id": 42, "title": "answer"}])
    response = client.get("/api/news/42")
    assert response.status_code == 200
    assert response.json() == {"id": 42, "title": "answer"}
    assert client.get("/api/news/05").json()["title"] == "five"


def test_non_ascii_digit_segment_returns_collection(client, workspace) -> None:
    write_json(workspace / "news.json", [{"id": 2}])
    response = client.get("/api/news/%C2%B2")
    assert response.status_code == 200
    assert response.json() == [{"id": 2}]


def test_dynamic_route_missing_record(client, workspace) -> None:
    write_json(workspace / "news.json", [{"id": 1}])
    response = client.get("/api/news/7")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_plain_route_returns_whole_array(client, workspace) -> None:
    write_json(workspace / "news.json", [{"id": 1}, {"id": 2}])
    response = client.get("/api/news/")
    assert response.status_code == 200
    assert response.json() == [{"id": 1}, {"id": 2}]


def test_dynamic_pattern_does_not_match_collection_path(site, workspace) -> None:
    write_json(workspace / "news.json", [{"id": 3}])
    client = make_client(site, server_id="other")
    assert client.get("/api/news/3").json() == {"id": 3}
    response = client.get("/api/news/")
    assert response.status_code == 404
    assert response.json() == {"error": "API endpoint not found."}


def test_unknown_endpoint_and_wrong_method(client) -> None:
    assert client.get("/api/unknown/").json() == {"error": "API endpoint not found."}
    response = client.delete("/api/ping/")
    assert response.status_code == 404


def test_malformed_body_is_a_server_error(client) -> None:
    response = client.post("/api/posts/", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 500
    assert response.json()["error"].startswith("Server error:")


def test_non_array_data_file_is_a_server_error(client, workspace) -> None:
    write_json(workspace / "news.json", {"id": 1})
    response = client.get("/api/news/")
    assert response.status_code == 500


def test_custom_api_prefix(site, workspace) -> None:
    client = make_client(site, api_base="/v1/")
    assert client.get("/v1/ping/").json() == []
    assert client.get("/api/ping/").status_code == 404


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_client(site):
    return make_client(site, user_auth=True)


def test_protected_route_requires_session(auth_client) -> None:
    response = auth_client.post("/api/news/", json={"title": "x"})
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_register_login_and_authenticated_post(auth_client, workspace) -> None:
    registered = auth_client.post(
        "/register", data={"username": "ada", "password": "s3cret"}, follow_redirects=False
    )
    assert registered.status_code == 302
    assert registered.headers["location"] == "/login.html"

    users = json.loads((workspace / "users.json").read_text())
    assert set(users["ada"]) == {"passwordHash", "uuid"}

    login = auth_client.post("/login", data={"username": "ada", "password": "s3cret"}, follow_redirects=False)
    assert login.status_code == 302
    assert login.headers["location"] == "/"
    cookie = login.headers["set-cookie"]
    assert cookie.startswith("sessionId=")
    assert "HttpOnly" in cookie and "Path=/" in cookie and "Max-Age=86400" in cookie

    created = auth_client.post("/api/news/", json={"title": "hello"})
    assert created.status_code == 201
    assert created.json() == {"title": "hello", "id": 1, "author": users["ada"]["uuid"]}


def test_login_with_wrong_password(auth_client) -> None:
    auth_client.post("/register", data={"username": "ada", "password": "right"}, follow_redirects=False)
    response = auth_client.post("/login", data={"username": "ada", "password": "wrong"}, follow_redirects=False)
    assert response.status_code == 401
    assert "401 Unauthorized" in response.text


def test_register_conflict_and_invalid_input(auth_client) -> None:
    auth_client.post("/register", data={"username": "ada", "password": "pw"}, follow_redirects=False)
    conflict = auth_client.post("/register", data={"username": "ada", "password": "pw2"}, follow_redirects=False)
    invalid = auth_client.post("/register", data={"username": "bob"}, follow_redirects=False)
    assert conflict.status_code == 409
    assert invalid.status_code == 400


def test_existing_user_store_is_loaded(site, workspace) -> None:
    from tontoo.web.auth import hash_password

    write_json(workspace / "users.json", {"ada": {"passwordHash": hash_password("pw"), "uuid": "user-1"}})
    client = make_client(site, user_auth=True)
    login = client.post("/login", data={"username": "ada", "password": "pw"}, follow_redirects=False)
    assert login.status_code == 302
    assert client.post("/api/news/", json={}).json()["author"] == "user-1"


def test_forged_session_is_rejected(auth_client) -> None:
    response = auth_client.post("/api/news/", json={}, headers={"cookie": "sessionId=forged"})
    assert response.status_code == 403


def test_login_path_is_static_when_auth_disabled(client) -> None:
    response = client.post("/login", data={"username": "a", "password": "b"})
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Static files
# ---------------------------------------------------------------------------


def test_root_serves_landing_page(client) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "<h1>home</h1>"
    assert response.headers["content-type"].startswith("text/html")


def test_missing_asset_serves_not_found_page(client) -> None:
    response = client.get("/nope.png")
    assert response.status_code == 404
    assert response.text == "<h1>missing</h1>"
    assert response.headers["content-type"].startswith("text/html")


def test_content_type_follows_extension(client) -> None:
    assert client.get("/style.css").headers["content-type"].startswith("text/css")
    assert client.get("/logo.bin").headers["content-type"] == "application/octet-stream"


def test_missing_not_found_page_falls_back_to_text(site) -> None:
    client = make_client(site, not_found="absent.html")
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.text == "404 Not Found"


def test_paths_cannot_escape_public_root(site, workspace) -> None:
    (workspace / "secret.txt").write_text("hidden")
    handler = RequestHandler(site, ServerDeclaration())
    response = handler.handle("GET", "/../secret.txt")
    assert response.status_code == 404
    assert b"hidden" not in response.body


def test_null_byte_in_path_serves_not_found_page(client) -> None:
    response = client.get("/a%00b.html")
    assert response.status_code == 404
    assert response.text == "<h1>missing</h1>"


def test_next_id_ignores_records_without_integer_ids() -> None:
    assert next_id([]) == 1
    assert next_id([{"id": 3}, {"id": "9"}, {"title": "no id"}, "junk"]) == 10
