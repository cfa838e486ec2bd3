"""Tests for spur.pool: Context acquisition, reset, and reuse."""

import threading
from typing import Any

from spur.app import App
from spur.context import Context


def _scope(path: str = "/") -> dict[str, Any]:
    return {"type": "http", "method": "GET", "path": path, "headers": []}


async def _receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


async def _send(message: dict[str, Any]) -> None:
    pass


class TestAcquire:
    def test_fresh_context_is_clean(self) -> None:
        app = App()
        ctx = app.pool.acquire(_scope("/a"), _receive, _send)

        assert ctx.app is app
        assert ctx.request is not None
        assert ctx.request.path == "/a"
        assert ctx.ended is False
        assert ctx.state == {}
        assert ctx.response.status == 0
        assert ctx.response.committed is False
        assert app.pool.created == 1

    def test_each_request_gets_new_request_object(self) -> None:
        app = App()
        first = app.pool.acquire(_scope("/a"), _receive, _send)
        second = app.pool.acquire(_scope("/b"), _receive, _send)
        assert first is not second
        assert app.pool.created == 2


class TestRelease:
    def test_release_drops_bindings(self) -> None:
        app = App()
        ctx = app.pool.acquire(_scope(), _receive, _send)
        app.pool.release(ctx)

        assert ctx.request is None
        assert app.pool.free == 1

    async def test_reacquired_context_has_no_residue(self) -> None:
        app = App()
        ctx = app.pool.acquire(_scope("/first"), _receive, _send)
        ctx.state["user"] = "alice"
        ctx.response.headers.set("x-secret", "1")
        ctx.response.set_body("stale")
        ctx.set_status(418)
        ctx.after(lambda c: None)
        ctx.end()
        await ctx.response.commit()
        app.pool.release(ctx)

        again = app.pool.acquire(_scope("/second"), _receive, _send)

        assert again is ctx
        assert app.pool.created == 1
        assert again.request is not None
        assert again.request.path == "/second"
        assert again.ended is False
        assert again.state == {}
        assert again.response.status == 0
        assert "x-secret" not in again.response.headers
        assert again.response.body == b""
        assert again.response.committed is False
        # No hooks from the previous cycle: adding one must not raise and
        # running them must only see the new one
        seen: list[str] = []
        again.after(lambda c: seen.append("new"))
        await again.run_after_hooks()
        assert seen == ["new"]


class TestConcurrency:
    def test_threads_never_share_a_context(self) -> None:
        app = App()
        in_use: set[int] = set()
        lock = threading.Lock()
        collisions: list[Context] = []

        def worker() -> None:
            for _ in range(200):
                ctx = app.pool.acquire(_scope(), _receive, _send)
                with lock:
                    if id(ctx) in in_use:
                        collisions.append(ctx)
                    in_use.add(id(ctx))
                with lock:
                    in_use.discard(id(ctx))
                app.pool.release(ctx)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert collisions == []
        assert app.pool.free == app.pool.created
        assert app.pool.created <= 8
