"""Hello World: the simplest spur app.

Demonstrates an ordered middleware chain, per-request state, after-hooks,
structured errors, and a custom error handler.

Run:
    python app.py
"""

import json
import time

from spur import App, Context, Error, parse_error

app = App()


@app.use
def timing(ctx: Context) -> None:
    started = time.perf_counter()

    def stamp(c: Context) -> None:
        c.set_header("x-elapsed-ms", f"{(time.perf_counter() - started) * 1000:.2f}")

    ctx.after(stamp)


@app.use
async def auth(ctx: Context) -> Error | None:
    if ctx.bound_request.path.startswith("/admin") and ctx.get_header("authorization") is None:
        return Error(401, "unauthorized")
    ctx.state["user"] = ctx.get_header("x-user", "anonymous")
    return None


@app.use
async def routes(ctx: Context) -> Error | None:
    request = ctx.bound_request
    path = request.path
    if path == "/":
        ctx.text(200, "Hello, World!")
    elif path == "/me":
        ctx.json(200, {"user": ctx.state["user"]})
    elif path == "/admin":
        ctx.text(200, "welcome back")
    elif path == "/echo" and request.method == "POST":
        data = await request.json()
        ctx.json(200, data)
    elif path == "/crash":
        raise RuntimeError("something went very wrong")
    else:
        return Error(404, f"Nothing at {path}")
    return None


@app.error_handler
def json_errors(ctx: Context, err: Exception) -> Error | None:
    error = parse_error(err)
    if error is None:
        return None
    ctx.set_type("json")
    return Error(error.status, json.dumps({"error": error.message}))


if __name__ == "__main__":
    app.listen(":3000")
