"""Tests for refpush.middleware — the ASGI push-on-referer middleware."""

from typing import Any

import pytest

from refpush.cache import PushCache
from refpush.config import PushConfig
from refpush.middleware import (
    PushOnReferer,
    preload_link,
    push_request_headers,
    request_from_scope,
)
from refpush.policy import PushPromise

FILES = {
    "/a.html": "/srv/www/a.html",
    "/app.js": "/srv/www/app.js",
    "/site.css": "/srv/www/site.css",
    "//x/a.html": "/srv/www/x/a.html",
    "//static/app.js": "/srv/www/static/app.js",
}


def _make_scope(path: str = "/", *, push: bool = True, **overrides: Any) -> dict[str, Any]:
    """Build a minimal ASGI HTTP scope dict."""
    headers = overrides.pop("headers", [(b"host", b"example.com")])
    base: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "2",
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "root_path": "",
        "headers": headers,
        "extensions": {"http.response.push": {}, "http.response.pathsend": {}} if push else {},
    }
    base.update(overrides)
    return base


async def file_app(scope: dict[str, Any], receive: Any, send: Any) -> None:
    """Serve known paths via pathsend, everything else as a 404 body."""
    file = FILES.get(scope["path"])
    if file is None:
        await send({"type": "http.response.start", "status": 404, "headers": []})
        await send({"type": "http.response.body", "body": b"Not Found"})
        return
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.pathsend", "path": file})


async def body_app(scope: dict[str, Any], receive: Any, send: Any) -> None:
    """Always answer 200 with an in-memory body."""
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"console.log(1)"})


async def _call(app: Any, scope: dict[str, Any]) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await app(scope, receive, send)
    return sent


def _types(messages: list[dict[str, Any]]) -> list[str]:
    return [m["type"] for m in messages]


async def _learn_app_js(app: PushOnReferer) -> None:
    await _call(
        app,
        _make_scope(
            "/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"https://example.com/a.html")],
        ),
    )


@pytest.mark.anyio
async def test_learns_then_pushes() -> None:
    app = PushOnReferer(file_app)

    first = await _call(app, _make_scope("/a.html"))
    assert _types(first) == ["http.response.start", "http.response.pathsend"]

    learned = await _call(
        app,
        _make_scope(
            "/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"https://example.com/a.html")],
        ),
    )
    assert _types(learned) == ["http.response.start", "http.response.pathsend"]
    assert b"/a.html" in app.cache

    hit = await _call(app, _make_scope("/a.html"))
    assert _types(hit) == [
        "http.response.push",
        "http.response.start",
        "http.response.pathsend",
    ]
    push = hit[0]
    assert push["path"] == "/app.js"
    assert push["headers"] == [(b"x-push-origin", b"/a.html")]


@pytest.mark.anyio
async def test_hit_is_not_consumed() -> None:
    app = PushOnReferer(file_app)
    await _learn_app_js(app)
    for _ in range(3):
        hit = await _call(app, _make_scope("/a.html"))
        assert hit[0]["type"] == "http.response.push"


@pytest.mark.anyio
async def test_link_fallback_without_push_extension() -> None:
    app = PushOnReferer(file_app)
    await _learn_app_js(app)

    hit = await _call(app, _make_scope("/a.html", push=False))
    assert _types(hit) == ["http.response.start", "http.response.pathsend"]
    assert (b"link", b"</app.js>; rel=preload; as=script") in hit[0]["headers"]


@pytest.mark.anyio
async def test_link_fallback_disabled() -> None:
    app = PushOnReferer(file_app, config=PushConfig(link_fallback=False))
    await _learn_app_js(app)

    hit = await _call(app, _make_scope("/a.html", push=False))
    assert _types(hit) == ["http.response.start", "http.response.pathsend"]
    assert hit[0]["headers"] == []


@pytest.mark.anyio
async def test_body_response_not_learned() -> None:
    app = PushOnReferer(body_app)
    sent = await _call(
        app,
        _make_scope(
            "/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"https://example.com/a.html")],
        ),
    )
    assert _types(sent) == ["http.response.start", "http.response.body"]
    assert len(app.cache) == 0


@pytest.mark.anyio
async def test_not_found_not_learned() -> None:
    app = PushOnReferer(file_app)
    await _call(
        app,
        _make_scope(
            "/missing.js",
            headers=[(b"host", b"example.com"), (b"referer", b"/a.html")],
        ),
    )
    assert len(app.cache) == 0


@pytest.mark.anyio
async def test_cross_origin_not_learned() -> None:
    app = PushOnReferer(file_app)
    await _call(
        app,
        _make_scope(
            "/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"https://other.example/a.html")],
        ),
    )
    assert len(app.cache) == 0


@pytest.mark.anyio
async def test_shared_cache_and_custom_origin_header() -> None:
    cache = PushCache(capacity=10)
    learner = PushOnReferer(
        file_app, cache=cache, config=PushConfig(origin_header="X-Learned-From")
    )
    pusher = PushOnReferer(file_app, cache=cache)
    assert learner.cache is pusher.cache

    await _learn_app_js(learner)
    hit = await _call(pusher, _make_scope("/a.html"))
    assert (b"x-learned-from", b"/a.html") in hit[0]["headers"]


@pytest.mark.anyio
async def test_custom_policy() -> None:
    def everything(referrer: bytes, path: bytes, file: Any) -> PushPromise:
        return PushPromise(path=path, file=file)

    app = PushOnReferer(file_app, make_push_promise=everything)
    await _call(
        app,
        _make_scope("/a.html", headers=[(b"host", b"example.com"), (b"referer", b"/app.js")]),
    )
    assert app.cache.lookup(b"/app.js") == (PushPromise(path=b"/a.html", file="/srv/www/a.html"),)


@pytest.mark.anyio
async def test_non_http_scope_passes_through() -> None:
    seen: list[str] = []

    async def lifespan_app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        seen.append(scope["type"])
        await send({"type": "lifespan.startup.complete"})

    sent = await _call(PushOnReferer(lifespan_app), {"type": "lifespan"})
    assert seen == ["lifespan"]
    assert _types(sent) == ["lifespan.startup.complete"]


@pytest.mark.anyio
async def test_held_start_flushed_when_no_body_follows() -> None:
    async def start_only(scope: dict[str, Any], receive: Any, send: Any) -> None:
        await send({"type": "http.response.start", "status": 204, "headers": []})

    sent = await _call(PushOnReferer(start_only), _make_scope("/a.html"))
    assert _types(sent) == ["http.response.start"]


@pytest.mark.anyio
async def test_app_errors_propagate() -> None:
    async def broken(scope: dict[str, Any], receive: Any, send: Any) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await _call(PushOnReferer(broken), _make_scope("/a.html"))


@pytest.mark.anyio
async def test_double_slash_page_learns_and_hits() -> None:
    app = PushOnReferer(file_app)
    await _call(
        app,
        _make_scope(
            "//static/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"https://example.com//x/a.html")],
        ),
    )
    assert app.cache.referrers() == [b"//x/a.html"]

    hit = await _call(app, _make_scope("//x/a.html"))
    assert hit[0]["type"] == "http.response.push"
    assert hit[0]["path"] == "//static/app.js"


class TestRequestFromScope:
    def test_reads_path_referer_host(self) -> None:
        scope = _make_scope(
            "/app.js",
            headers=[(b"host", b"example.com"), (b"referer", b"http://example.com/")],
        )
        request = request_from_scope(scope)
        assert request.path == b"/app.js"
        assert request.referer == b"http://example.com/"
        assert request.host == b"example.com"

    def test_raw_path_query_is_stripped(self) -> None:
        scope = _make_scope("/a.html", raw_path=b"/a.html?x=1")
        assert request_from_scope(scope).path == b"/a.html"

    def test_leading_double_slash_path_is_kept(self) -> None:
        scope = _make_scope("//static/app.js")
        assert request_from_scope(scope).path == b"//static/app.js"

    def test_falls_back_to_path(self) -> None:
        scope = _make_scope("/café.html", raw_path=None)
        assert request_from_scope(scope).path == "/café.html".encode()

    def test_missing_headers(self) -> None:
        request = request_from_scope(_make_scope("/", headers=[]))
        assert request.referer is None
        assert request.host is None

    def test_authority_pseudo_header(self) -> None:
        scope = _make_scope("/", headers=[(b":authority", b"example.com:8443")])
        assert request_from_scope(scope).host == b"example.com:8443"


class TestPreloadLink:
    def test_script(self) -> None:
        promise = PushPromise(
            path=b"/app.js",
            headers=((b"content-type", b"application/javascript"),),
        )
        assert preload_link(promise) == b"</app.js>; rel=preload; as=script"

    def test_style(self) -> None:
        promise = PushPromise(path=b"/site.css", headers=((b"content-type", b"text/css"),))
        assert preload_link(promise) == b"</site.css>; rel=preload; as=style"

    def test_unknown_type(self) -> None:
        assert preload_link(PushPromise(path=b"/font.woff2")) == b"</font.woff2>; rel=preload"


class TestPushRequestHeaders:
    def test_drops_representation_headers(self) -> None:
        promise = PushPromise(
            path=b"/app.js",
            headers=(
                (b"content-type", b"application/javascript"),
                (b"Content-Length", b"12"),
                (b"x-push-origin", b"/a.html"),
            ),
        )
        assert push_request_headers(promise) == [(b"x-push-origin", b"/a.html")]

    def test_no_headers(self) -> None:
        assert push_request_headers(PushPromise(path=b"/app.js")) == []
