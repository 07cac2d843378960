"""ASGI application wrapping a :class:`RequestHandler`."""

from __future__ import annotations

from fastapi import FastAPI, Request
from starlette.responses import Response

from tontoo.web.handler import RequestHandler

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app(handler: RequestHandler) -> FastAPI:
    """Build the app served by one declared server's HTTP and HTTPS listeners."""
    app = FastAPI(
        title=f"tontoo:{handler.declaration.server_id}",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def dispatch(request: Request) -> Response:
        body = await request.body()
        return handler.handle(request.method, request.url.path, body, request.cookies)

    app.state.handler = handler
    return app


__all__ = ["create_app"]
