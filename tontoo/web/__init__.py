"""Embedded web engine: declarations, request handling and listeners."""

from tontoo.web.declarations import ApiDeclaration, ServerDeclaration
from tontoo.web.handler import RequestHandler
from tontoo.web.server import WebServer, start_web

__all__ = ["ApiDeclaration", "ServerDeclaration", "RequestHandler", "WebServer", "start_web"]
