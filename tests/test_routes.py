"""
Tests for the route table and the JSON endpoints.
"""

from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


class TestRouting:
    @pytest.mark.parametrize("method,path,allowed", [
        ("POST", "/", "GET"),
        ("POST", "/api/hello", "GET"),
        ("DELETE", "/api/hello", "GET"),
        ("PUT", "/api/greet/bob", "GET"),
        ("GET", "/api/echo", "POST"),
        ("PATCH", "/api/echo", "POST"),
        ("POST", "/health", "GET"),
        ("HEAD", "/health", "GET"),
    ])
    def test_wrong_method_is_405(self, client, method, path, allowed):
        response = client.request(method, path)
        assert response.status_code == 405
        assert response.headers["allow"] == allowed

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    @pytest.mark.parametrize("path", [
        "/nope",
        "/api",
        "/api/greet",
        "/api/greet/a/b",
        "/api/hello/extra",
        "/API/hello",
        "/Health",
        "/docs",
        "/openapi.json",
    ])
    def test_unknown_path_is_404(self, client, method, path):
        response = client.request(method, path, follow_redirects=False)
        assert response.status_code == 404


class TestHello:
    def test_message(self, client):
        response = client.get("/api/hello")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.content == b'{"message":"Hello from Gleam!"}'


class TestGreet:
    @pytest.mark.parametrize("name", [
        "bob",
        "Jürgen",
        "名前",
        "O'Brien",
        'say "hi"',
        "<script>",
        "a b",
        "100%",
    ])
    def test_name_is_used_verbatim(self, client, name):
        response = client.get("/api/greet/" + quote(name, safe=""))
        assert response.status_code == 200
        assert response.json() == {"message": f"Hello, {name}!"}

    def test_encoded_slash_stays_in_name(self, client):
        response = client.get("/api/greet/a%2Fb")
        assert response.status_code == 200
        assert response.json() == {"message": "Hello, a/b!"}

    def test_trailing_slash_redirects(self, client):
        response = client.get("/api/greet/bob/")
        assert response.status_code == 200
        assert response.json() == {"message": "Hello, bob!"}

    def test_unicode_is_not_escaped(self, client):
        response = client.get("/api/greet/" + quote("Jürgen"))
        assert response.content == '{"message":"Hello, Jürgen!"}'.encode("utf-8")


class TestEcho:
    @pytest.mark.parametrize("body", [
        b'{"hello": "world"}',
        b"",
        b"not json at all",
        b"\x00\xff\xfe binary",
        "ünïcödé".encode("utf-8"),
    ])
    def test_body_is_returned_unchanged(self, client, body):
        response = client.post("/api/echo", content=body)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.content == body


class TestHealth:
    def test_status(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.content == b'{"status":"healthy","service":"gleam_web_server"}'

    def test_service_name_comes_from_settings(self, database_url):
        settings = Settings(database_url=database_url, service_name="demo", store_init_attempts=1)
        with TestClient(create_app(settings)) as client:
            assert client.get("/health").json() == {"status": "healthy", "service": "demo"}
