"""
Listeners for declared web servers.

Sockets are bound synchronously when ``startWEB`` executes, so a port
that is already taken is reported right away. Serving runs as uvicorn
``Server.serve`` tasks on the runtime's event loop; the runner owns
signal handling, so uvicorn's own signal capture is disabled.
"""

from __future__ import annotations

import contextlib
import logging
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, List, Optional

import uvicorn
from fastapi import FastAPI

from tontoo.errors import ListenerError
from tontoo.web.app import create_app
from tontoo.web.certs import SelfSignedCertificateGenerator, ensure_certificate
from tontoo.web.declarations import ServerDeclaration
from tontoo.web.handler import RequestHandler

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.web")


class Listener(uvicorn.Server):
    """One bound socket served by uvicorn."""

    def __init__(self, config: uvicorn.Config, sock: socket.socket, *, scheme: str, server_id: str) -> None:
        super().__init__(config)
        self.sock = sock
        self.scheme = scheme
        self.server_id = server_id

    @property
    def port(self) -> int:
        return self.sock.getsockname()[1]

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    async def serve_forever(self) -> None:
        await self.serve(sockets=[self.sock])

    def stop(self) -> None:
        self.should_exit = True

    def close(self) -> None:
        with contextlib.suppress(OSError):
            self.sock.close()


@dataclass
class WebServer:
    declaration: ServerDeclaration
    handler: RequestHandler
    app: FastAPI
    listeners: List[Listener] = field(default_factory=list)

    @property
    def listening(self) -> bool:
        return bool(self.listeners)


def open_listener(
    app: FastAPI,
    host: str,
    port: int,
    *,
    server_id: str,
    keyfile: Optional[Path] = None,
    certfile: Optional[Path] = None,
) -> Listener:
    """
    Bind ``host:port`` and prepare a uvicorn listener for ``app``.

    Raises:
        ListenerError: if the port cannot be bound or TLS material cannot be loaded.
    """
    scheme = "https" if certfile else "http"
    try:
        sock = socket.create_server((host, port))
    except OSError as exc:
        raise ListenerError(f"{scheme.upper()} server error: {exc}") from exc

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        lifespan="off",
        ssl_keyfile=str(keyfile) if keyfile else None,
        ssl_certfile=str(certfile) if certfile else None,
    )
    try:
        config.load()
    except (OSError, ValueError) as exc:
        sock.close()
        raise ListenerError(f"Could not start {scheme.upper()} server: {exc}") from exc
    return Listener(config, sock, scheme=scheme, server_id=server_id)


def _attach(ctx: "RuntimeContext", server: WebServer, listener: Listener) -> None:
    server.listeners.append(listener)
    ctx.listeners.append(listener)
    ctx.spawn(listener.serve_forever)
    logger.info(
        "Web server '%s' listening on %s://%s:%d",
        server.declaration.server_id,
        listener.scheme,
        server.declaration.host,
        listener.port,
    )


def start_web(ctx: "RuntimeContext", declaration: ServerDeclaration) -> WebServer:
    """Start the HTTP listener and, when ``ssl`` is set, the HTTPS one."""
    if declaration.server_id in ctx.servers:
        logger.warning("Web server '%s' is declared more than once", declaration.server_id)

    handler = RequestHandler(ctx, declaration)
    app = create_app(handler)
    server = WebServer(declaration, handler, app)
    ctx.servers[declaration.server_id] = server

    try:
        _attach(ctx, server, open_listener(app, declaration.host, declaration.port, server_id=declaration.server_id))
    except ListenerError as exc:
        logger.error("Error: %s", exc.format())

    if declaration.ssl:
        generator = ctx.cert_generator or SelfSignedCertificateGenerator()
        try:
            keyfile, certfile = ensure_certificate(
                ctx.workspace / "ssl",
                generator,
                bits=declaration.ssl_bits,
                days=ctx.settings.cert_validity_days,
            )
            listener = open_listener(
                app,
                declaration.host,
                declaration.ssl_port,
                server_id=declaration.server_id,
                keyfile=keyfile,
                certfile=certfile,
            )
        except (ListenerError, OSError, ValueError) as exc:
            message = exc.format() if isinstance(exc, ListenerError) else str(exc)
            logger.warning(
                "Could not start HTTPS server for '%s': %s. Are /ssl/server.key and .crt set up?",
                declaration.server_id,
                message,
            )
        else:
            _attach(ctx, server, listener)
    return server


__all__ = ["Listener", "WebServer", "open_listener", "start_web"]
