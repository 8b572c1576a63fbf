"""ASGI handler — translates ASGI scope/messages to perch types.

Converts the scope into a typed Request, runs it through the middleware
pipeline down to the router, and sends the resulting response back
through ASGI send().
"""

import inspect
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import FileResponse
from perch.middleware.protocol import AnyResponse, Next
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_file_response, send_response


def build_pipeline(router: Router, middleware: tuple[Callable[..., Any], ...]) -> Next:
    """Compose middleware around router dispatch. First added is outermost."""

    async def dispatch(req: Request) -> AnyResponse:
        route = router.match(req.method, req.path)
        args = (req,) if _wants_request(route.handler) else ()
        return negotiate(await invoke(route.handler, *args))

    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> AnyResponse:
            return await _mw(req, _next)

        handler = make_next
    return handler


def _wants_request(handler: Callable[..., Any]) -> bool:
    """Handlers take either no arguments or the request."""
    return bool(inspect.signature(handler).parameters)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    pipeline: Next,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        response = await pipeline(request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    if isinstance(response, FileResponse):
        await send_file_response(response, send)
    else:
        await send_response(response, send)
