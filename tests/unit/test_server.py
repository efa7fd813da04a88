"""
Unit tests for request handling in HTTPServer and the directory plugin,
without sockets.
"""

import json
import logging

import pytest

from dirindex import DirectoryConfig, DirectoryIndex, HTTPServer, register
from dirindex.http.request import RequestParser
from dirindex.http.response import ResponseBuilder, ok
from dirindex.middleware import FunctionMiddleware


@pytest.fixture
def server(config) -> HTTPServer:
    return HTTPServer(config)


class TestHooks:

    def test_unknown_hook(self, server):
        with pytest.raises(ValueError, match="Unknown hook"):
            server.hook("after_everything", lambda request: None)

    def test_first_response_wins(self, server, make_request):
        calls = []

        def passing(request):
            calls.append("passing")
            return None

        def answering(request):
            calls.append("answering")
            return ok("hooked")

        def never(request):
            calls.append("never")
            return ok("late")

        server.hook("before_dispatch", passing)
        server.hook("before_dispatch", answering)
        server.hook("before_dispatch", never)

        response = server.handle_request(make_request("/"))

        assert response.body == b"hooked"
        assert calls == ["passing", "answering"]

    def test_router_answers_when_no_hook_does(self, server, make_request):
        server.hook("before_dispatch", lambda request: None)

        @server.get("/status")
        def status(request):
            return ok({"status": "up"})

        assert json.loads(server.handle_request(make_request("/status")).body) == {"status": "up"}
        assert server.handle_request(make_request("/missing")).status == 404

    def test_exception_becomes_500(self, server, make_request, caplog):
        def broken(request):
            raise RuntimeError("kaput")

        server.hook("before_dispatch", broken)

        response = server.handle_request(make_request("/"))

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Internal Server Error"}
        assert "kaput" in caplog.text

    def test_middleware_wraps_hooks(self, server, make_request):
        def stamp(request, next):
            response = next(request)
            response.set_header("X-Stamp", "1")
            return response

        server.hook("before_dispatch", lambda request: ok("x"))
        server.use(FunctionMiddleware(stamp))

        assert server.handle_request(make_request("/")).headers["X-Stamp"] == "1"


class TestDirectoryIndexPlugin:
    """The plugin registered on a server, driven through handle_request()."""

    def test_register(self, server, doc_root, make_request, caplog):
        caplog.set_level(logging.INFO, logger="dirindex.plugin")

        plugin = register(server, root=doc_root, enable_json=True)

        assert isinstance(plugin, DirectoryIndex)
        assert f"Serving {doc_root}" in caplog.text

        response = server.handle_request(make_request("/?format=json"))
        assert json.loads(response.body)["current"] == "/"

    def test_invalid_config_fails_at_construction(self, tmp_path):
        with pytest.raises(ValueError):
            DirectoryIndex(DirectoryConfig(root=tmp_path / "missing"))

    def test_file_served(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        response = server.handle_request(make_request("/a%20b.txt"))
        try:
            assert response.status == 200
            assert response.stream.read_all() == b"hello world\n"
        finally:
            response.close()

    def test_missing_falls_through_to_router(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        @server.get("/status")
        def status(request):
            return ok("up")

        assert server.handle_request(make_request("/status")).body == b"up"
        assert server.handle_request(make_request("/nope")).status == 404

    def test_existing_path_shadows_routes(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        @server.get("/sub")
        def sub(request):
            return ok("route")

        response = server.handle_request(make_request("/sub"))
        assert b"Index of /sub" in response.body

    def test_other_methods_pass_through(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        @server.post("/sub")
        def upload(request):
            return ResponseBuilder().text("posted").build()

        assert server.handle_request(make_request("/sub", method="POST")).body == b"posted"
        assert server.handle_request(make_request("/a%20b.txt", method="DELETE")).status == 404

    def test_head_gets_the_same_response(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        get = server.handle_request(make_request("/sub/"))
        head = server.handle_request(make_request("/sub/", method="HEAD"))

        assert head.status == 200
        assert head.content_length == get.content_length

    def test_traversal_is_403(self, server, doc_root, make_request):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        response = server.handle_request(make_request("/sub/../../etc/passwd"))

        assert response.status == 403
        assert json.loads(response.body) == {"error": "Access denied"}

    def test_listing_failure_is_500(self, server, doc_root, make_request, monkeypatch):
        from dirindex.directory.listing import ListingBuilder

        def locked(self, path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(ListingBuilder, "_stat", locked)
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        assert server.handle_request(make_request("/sub/")).status == 500

    def test_unreadable_target_is_500_not_404(self, server, doc_root, make_request, deny_stat):
        deny_stat("deep.md")
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)

        response = server.handle_request(make_request("/sub/deep.md"))

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Internal Server Error"}

    def test_double_slash_target(self, server, doc_root):
        DirectoryIndex(DirectoryConfig(root=doc_root)).register(server)
        request = RequestParser().parse(b"GET //sub/deep.md HTTP/1.1\r\nHost: x\r\n\r\n")

        response = server.handle_request(request)

        assert response.status == 200
        assert response.stream.read_all() == b"# deep\n"
        response.close()

    def test_handler_failure_is_500(self, server, doc_root, make_request, caplog):
        def broken(context, path):
            raise ValueError("bad handler")

        DirectoryIndex(DirectoryConfig(root=doc_root, handler=broken)).register(server)

        assert server.handle_request(make_request("/")).status == 500
        assert "HandlerError" in caplog.text or "bad handler" in caplog.text
