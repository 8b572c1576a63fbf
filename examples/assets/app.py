"""Static Assets — cache-busted asset URLs in front of a tiny app.

Demonstrates:
- Root files (favicon.ico, robots.txt, manifest.json) served from public/
- /static/... served from public/static/
- Build-stamped URLs like /static/<build>/css/site.css resolving to the
  same file, marked noindex so crawlers keep the canonical URL
- Everything else falling through to ordinary routes

Run:
    cd examples/assets && python app.py
"""

import time
from pathlib import Path

from perch import App, Request, Response, wildcard_assets
from perch.middleware.protocol import AnyResponse, Next

PUBLIC_DIR = Path(__file__).parent / "public"

# Anything unique per deploy works; the segment is never checked
BUILD = "b20260101"

app = App()


# ---------------------------------------------------------------------------
# Middleware stack (order matters: first added = outermost)
# ---------------------------------------------------------------------------


async def timing(request: Request, next: Next) -> AnyResponse:
    """Add X-Response-Time to every response, static or not."""
    start = time.monotonic()
    response = await next(request)
    return response.with_header("X-Response-Time", f"{time.monotonic() - start:.3f}s")


app.add_middleware(timing)
app.add_middleware(wildcard_assets("static", ["manifest.json"], directory=PUBLIC_DIR))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.route("/")
def index():
    return f"""\
<!doctype html>
<html>
<head>
  <title>Perch Assets</title>
  <link rel="icon" href="/favicon.ico">
  <link rel="manifest" href="/manifest.json">
  <link rel="stylesheet" href="/static/{BUILD}/css/site.css">
</head>
<body>
  <h1>Perch Assets</h1>
  <script src="/static/{BUILD}/js/app.js"></script>
</body>
</html>
"""


@app.route("/static/version")
def version():
    """Not a file on disk, so the request falls through to here."""
    return {"build": BUILD}


@app.error(404)
def not_found(request: Request):
    return Response(f"404: nothing at {request.path}", content_type="text/plain; charset=utf-8")


if __name__ == "__main__":
    app.run()
