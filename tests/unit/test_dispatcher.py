"""
Unit tests for the request dispatcher and the response slot.
"""

import json

import pytest

from dirindex.config import DirectoryConfig
from dirindex.directory.context import RequestContext, ResponseState
from dirindex.directory.dispatcher import DispatchOutcome, RequestDispatcher
from dirindex.directory.errors import HandlerError
from dirindex.directory.handlers import ContentHandler, FunctionHandler, as_handler
from dirindex.directory.listing import ListingBuilder
from dirindex.http.response import ResponseBuilder


def dispatch(config: DirectoryConfig, request):
    context = RequestContext(request)
    outcome = RequestDispatcher(config).dispatch(context)
    return outcome, context.response


def body_of(response) -> bytes:
    if response.is_streamed:
        try:
            return response.stream.read_all()
        finally:
            response.close()
    return response.body


class TestResponseState:
    """Tests for the single response slot."""

    def test_first_write_wins(self, make_request):
        context = RequestContext(make_request("/"))

        assert context.render_text("first")
        assert not context.render_text("second")
        assert context.response.body == b"first"
        assert context.state.code == 200

    def test_empty_state(self):
        state = ResponseState()

        assert not state.responded
        assert state.code is None

    def test_refused_stream_is_closed(self, doc_root):
        state = ResponseState()
        state.write(ResponseBuilder().text("taken").build())

        refused = ResponseBuilder().file_stream(doc_root / "Makefile").build()
        assert not state.write(refused)
        assert refused.stream.closed

    def test_render_file_after_response_opens_nothing(self, make_request, tmp_path):
        context = RequestContext(make_request("/"))
        context.render_text("taken")

        # Would raise FileNotFoundError if it tried to open the file
        assert not context.render_file(tmp_path / "missing")


class TestHandlers:

    def test_as_handler(self):
        def func(context, path):
            pass

        class Custom(ContentHandler):
            def handle(self, context, path):
                return False

        class Duck:
            def handle(self, context, path):
                return False

        custom = Custom()
        assert as_handler(None) is None
        assert as_handler(custom) is custom
        assert isinstance(as_handler(func), FunctionHandler)
        assert as_handler(func).name == "func"
        assert as_handler(Duck()).name == "Duck"

    def test_as_handler_rejects_non_callables(self):
        with pytest.raises(TypeError):
            as_handler(42)

    def test_function_handler_reports_response(self, make_request):
        context = RequestContext(make_request("/"))
        handler = FunctionHandler(lambda ctx, path: ctx.render_text("x"))

        assert handler.handle(context, None) is True


class TestDispatch:
    """Tests for RequestDispatcher.dispatch()."""

    def test_file(self, doc_root, make_request):
        outcome, response = dispatch(DirectoryConfig(root=doc_root), make_request("/a%20b.txt"))

        assert outcome is DispatchOutcome.FILE
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["Content-Length"] == "12"
        assert body_of(response) == b"hello world\n"

    def test_listing(self, doc_root, make_request):
        outcome, response = dispatch(DirectoryConfig(root=doc_root), make_request("/sub/"))

        assert outcome is DispatchOutcome.LISTING
        html = response.body.decode()
        assert "Index of /sub/" in html
        assert "deep.md" in html

    def test_listing_without_trailing_slash(self, doc_root, make_request):
        outcome, response = dispatch(DirectoryConfig(root=doc_root), make_request("/sub"))

        assert outcome is DispatchOutcome.LISTING
        assert "<a href='/sub/deep.md'>" in response.body.decode()

    def test_json_listing(self, doc_root, make_request):
        config = DirectoryConfig(root=doc_root, enable_json=True)

        outcome, response = dispatch(config, make_request("/sub/", accept="application/json"))

        data = json.loads(response.body)
        assert data["current"] == "/sub/"
        assert [f["name"] for f in data["files"]] == ["Parent Directory", "deep.md"]

    def test_index_file(self, doc_root, make_request):
        config = DirectoryConfig(root=doc_root, dir_index=["index.htm", "index.html"])

        outcome, response = dispatch(config, make_request("/site/"))

        assert outcome is DispatchOutcome.INDEX
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert body_of(response) == b"<h1>site home</h1>"

    def test_index_that_is_a_directory_falls_back_to_listing(self, doc_root, make_request):
        config = DirectoryConfig(root=doc_root, dir_index="sub")

        outcome, _ = dispatch(config, make_request("/"))

        assert outcome is DispatchOutcome.LISTING

    def test_missing_is_unhandled(self, doc_root, make_request):
        outcome, response = dispatch(DirectoryConfig(root=doc_root), make_request("/nope"))

        assert outcome is DispatchOutcome.UNHANDLED
        assert not outcome.responded
        assert response is None

    def test_traversal_is_rejected(self, doc_root, make_request):
        outcome, response = dispatch(
            DirectoryConfig(root=doc_root / "sub"), make_request("/../a%20b.txt")
        )

        assert outcome is DispatchOutcome.REJECTED
        assert response.status == 403

    def test_root_file_serves_every_path(self, doc_root, make_request):
        config = DirectoryConfig(root=doc_root / "a b.txt")

        for path in ("/", "/anything/else", "/../x"):
            outcome, response = dispatch(config, make_request(path))
            assert outcome is DispatchOutcome.ROOT_FILE
            assert body_of(response) == b"hello world\n"

    def test_root_file_skips_handler(self, doc_root, make_request):
        calls = []
        config = DirectoryConfig(root=doc_root / "a b.txt", handler=lambda c, p: calls.append(p))

        dispatch(config, make_request("/"))

        assert calls == []

    def test_listing_permission_error_propagates(self, doc_root, make_request, monkeypatch):
        def locked(self, path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(ListingBuilder, "_stat", locked)

        with pytest.raises(PermissionError):
            dispatch(DirectoryConfig(root=doc_root), make_request("/sub/"))


class TestContentHandler:
    """Tests for the custom content handler."""

    def test_handler_sees_every_request_first(self, doc_root, make_request):
        seen = []
        config = DirectoryConfig(root=doc_root, handler=lambda ctx, path: seen.append(path))

        for path in ("/a%20b.txt", "/sub/", "/nope"):
            dispatch(config, make_request(path))

        assert seen == [doc_root / "a b.txt", doc_root / "sub", doc_root / "nope"]

    def test_handler_response_wins(self, doc_root, make_request):
        def handler(context, path):
            if path.suffix == ".md":
                context.render_html(f"<pre>{path.read_text()}</pre>")

        config = DirectoryConfig(root=doc_root, handler=handler)

        outcome, response = dispatch(config, make_request("/sub/deep.md"))
        assert outcome is DispatchOutcome.HANDLED
        assert response.body == b"<pre># deep\n</pre>"

        outcome, _ = dispatch(config, make_request("/a%20b.txt"))
        assert outcome is DispatchOutcome.FILE

    def test_handler_can_serve_missing_paths(self, doc_root, make_request):
        config = DirectoryConfig(
            root=doc_root, handler=lambda ctx, path: ctx.render_text("virtual"),
        )

        outcome, response = dispatch(config, make_request("/nope"))

        assert outcome is DispatchOutcome.HANDLED
        assert response.body == b"virtual"

    def test_handler_return_value_is_ignored(self, doc_root, make_request):
        config = DirectoryConfig(root=doc_root, handler=lambda ctx, path: True)

        outcome, _ = dispatch(config, make_request("/a%20b.txt"))

        assert outcome is DispatchOutcome.FILE

    def test_handler_class(self, doc_root, make_request):
        class Upper(ContentHandler):
            def handle(self, context, path):
                if path.is_file():
                    return context.render_text(path.read_text().upper())
                return False

        config = DirectoryConfig(root=doc_root, handler=Upper())

        _, response = dispatch(config, make_request("/a%20b.txt"))

        assert response.body == b"HELLO WORLD\n"

    def test_handler_exception_is_wrapped(self, doc_root, make_request):
        def broken(context, path):
            raise KeyError("boom")

        config = DirectoryConfig(root=doc_root, handler=broken)

        with pytest.raises(HandlerError) as exc:
            dispatch(config, make_request("/sub/"))

        assert isinstance(exc.value.__cause__, KeyError)
        assert exc.value.path == str(doc_root / "sub")

    def test_stream_is_closed_when_handler_fails(self, doc_root, make_request):
        def half_done(context, path):
            context.render_file(doc_root / "a b.txt")
            raise RuntimeError("gave up")

        context = RequestContext(make_request("/a%20b.txt"))
        dispatcher = RequestDispatcher(DirectoryConfig(root=doc_root, handler=half_done))

        with pytest.raises(HandlerError):
            dispatcher.dispatch(context)

        assert context.response.is_streamed
        assert context.response.stream.closed

    def test_no_double_response(self, doc_root, make_request):
        def handler(context, path):
            context.render_text("one")
            context.render_text("two")

        _, response = dispatch(DirectoryConfig(root=doc_root, handler=handler), make_request("/"))

        assert response.body == b"one"
