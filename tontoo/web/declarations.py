"""Server and API declarations built from ``startWEB`` and ``webAPI`` blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from tontoo.errors import DirectiveRuntimeError

DEFAULT_SERVER_ID = "webserver1"


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _drop_trailing_slash(path: str) -> str:
    return path[:-1] if path.endswith("/") else path


def _port(value: str, key: str, server_id: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise DirectiveRuntimeError(f'Invalid {key} "{value}" for web server "{server_id}".') from exc


@dataclass
class ServerDeclaration:
    """A ``startWEB`` block with defaults applied and variables substituted."""

    server_id: str = DEFAULT_SERVER_ID
    port: int = 8080
    host: str = "localhost"
    public_dir: str = "public"
    landing: str = "index.html"
    not_found: str = "404.html"
    api_base: str = "/api/"
    ssl: bool = False
    ssl_bits: int = 8000
    ssl_port: int = 443
    user_auth: bool = False

    @classmethod
    def from_block(
        cls,
        path: str,
        config: Mapping[str, str],
        substitute: Callable[[str], str],
    ) -> "ServerDeclaration":
        def value(key: str, default: str) -> str:
            raw = config.get(key)
            return substitute(raw if raw else default)

        server_id = value("id", DEFAULT_SERVER_ID)
        public_dir = substitute(path) if path else value("path", "public")
        api_base = value("api", "/api/")
        if not api_base.endswith("/"):
            api_base += "/"
        return cls(
            server_id=server_id,
            port=_port(value("port", "8080"), "port", server_id),
            host=value("host", "localhost"),
            public_dir=public_dir or "public",
            landing=value("landing", "index.html"),
            not_found=value("404", "404.html"),
            api_base=api_base,
            ssl=_flag(value("ssl", "false")),
            ssl_bits=_port(value("sslbits", "8000"), "sslbits", server_id),
            ssl_port=_port(value("sslport", "443"), "sslport", server_id),
            user_auth=_flag(value("user", "false")),
        )


@dataclass
class ApiDeclaration:
    """
    One ``webAPI`` route bound to a server.

    ``route`` and ``method`` are kept verbatim. ``data`` is the raw
    backing-file path; it is substituted when a request is served.
    """

    name: str
    method: str
    route: str
    data: str
    server_id: str
    auth_required: bool = False
    format: str = "json"

    @classmethod
    def from_block(cls, name: str, config: Mapping[str, str]) -> "ApiDeclaration":
        return cls(
            name=name,
            method=(config.get("type") or "GET").upper(),
            route=config.get("line", ""),
            data=config.get("data", ""),
            server_id=config.get("webserverid", ""),
            auth_required=_flag(config.get("user")),
            format=config.get("format") or "json",
        )

    @property
    def pattern(self) -> str:
        """The route without its trailing slash."""
        return _drop_trailing_slash(self.route)

    def matches(self, method: str, api_path: str, dynamic_path: str) -> bool:
        return self.method == method.upper() and self.pattern in (api_path, dynamic_path)


__all__ = ["ServerDeclaration", "ApiDeclaration", "DEFAULT_SERVER_ID"]
