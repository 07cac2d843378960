"""
Per-server request handling.

``RequestHandler.handle`` is synchronous and runs to completion for each
request once the body has been read: auth endpoints first, then API
dispatch under the configured prefix, then static files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qs

from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response

from tontoo.errors import RequestError
from tontoo.web.auth import SESSION_COOKIE, SessionStore, UserStore, session_cookie, verify_password
from tontoo.web.declarations import ApiDeclaration, ServerDeclaration

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.web")

MIME_TYPES: Dict[str, str] = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".txt": "text/plain",
}
DEFAULT_MIME = "application/octet-stream"

_LOGIN_FAILED = (
    '<h1>401 Unauthorized</h1><p>Incorrect username or password. <a href="/login.html">Try again</a>.</p>'
)
_USER_EXISTS = (
    '<h1>409 Conflict</h1><p>Username already exists. <a href="/register.html">Choose another</a>.</p>'
)
_BAD_REGISTRATION = "<h1>400 Bad Request</h1><p>Invalid username or password.</p>"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME)


def _same_id(record_id: Any, wanted: int) -> bool:
    try:
        return int(record_id) == wanted
    except (TypeError, ValueError):
        return False


def next_id(records: List[Any]) -> int:
    """One more than the largest integer ``id`` in ``records``, or 1."""
    ids = []
    for record in records:
        if isinstance(record, dict):
            try:
                ids.append(int(record.get("id")))
            except (TypeError, ValueError):
                continue
    return max(ids) + 1 if ids else 1


class RequestHandler:
    """Serves one declared web server.

    API declarations are looked up in ``ctx.apis`` on every request, so
    ``webAPI`` blocks parsed after ``startWEB`` are still routed.
    """

    def __init__(
        self,
        ctx: "RuntimeContext",
        declaration: ServerDeclaration,
        *,
        users: Optional[UserStore] = None,
        sessions: Optional[SessionStore] = None,
    ) -> None:
        self.ctx = ctx
        self.declaration = declaration
        self.public_dir = ctx.workspace_path(declaration.public_dir)
        self.sessions = sessions or SessionStore()
        if users is None and declaration.user_auth:
            users = UserStore.load(ctx.workspace / "users.json", server_id=declaration.server_id)
        self.users = users

    @property
    def apis(self) -> List[ApiDeclaration]:
        return self.ctx.apis.get(self.declaration.server_id, [])

    def handle(self, method: str, path: str, body: bytes = b"", cookies: Optional[Mapping[str, str]] = None) -> Response:
        method = method.upper()
        cookies = cookies or {}

        if self.declaration.user_auth and method == "POST" and path in ("/login", "/register"):
            form = self._form(body)
            if path == "/login":
                return self._login(form)
            return self._register(form)

        if path.startswith(self.declaration.api_base):
            return self._api(method, path, body, cookies)

        return self._static(path)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    @staticmethod
    def _form(body: bytes) -> Dict[str, str]:
        parsed = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items() if values}

    def _login(self, form: Mapping[str, str]) -> Response:
        username = form.get("username")
        record = self.users.get(username) if self.users else None
        if record is None or not verify_password(form.get("password", ""), record.password_hash):
            logger.info("Failed login for '%s' on '%s'", username, self.declaration.server_id)
            return HTMLResponse(_LOGIN_FAILED, status_code=401)
        token = self.sessions.create(record.uuid, username)
        return RedirectResponse("/", status_code=302, headers={"Set-Cookie": session_cookie(token)})

    def _register(self, form: Mapping[str, str]) -> Response:
        username = form.get("username")
        password = form.get("password")
        if self.users is None:
            self.users = UserStore(self.ctx.workspace / "users.json")
        if username and username in self.users:
            return HTMLResponse(_USER_EXISTS, status_code=409)
        if not username or not password:
            return HTMLResponse(_BAD_REGISTRATION, status_code=400)
        try:
            self.users.register(username, password)
        except OSError as exc:
            logger.error("Could not write users.json for '%s': %s", self.declaration.server_id, exc)
            return JSONResponse({"error": f"Server error: {exc}"}, status_code=500)
        return RedirectResponse("/login.html", status_code=302)

    # ------------------------------------------------------------------
    # API dispatch
    # ------------------------------------------------------------------
    def _api(self, method: str, path: str, body: bytes, cookies: Mapping[str, str]) -> Response:
        api_path = path[len(self.declaration.api_base) - 1:]
        if api_path.endswith("/"):
            api_path = api_path[:-1]
        segments = api_path.split("/")
        dynamic_path = "/".join(segments[:-1]) + "/$ID"
        candidate = segments[-1]

        api = next((item for item in self.apis if item.matches(method, api_path, dynamic_path)), None)
        if api is None:
            return JSONResponse({"error": "API endpoint not found."}, status_code=404)

        user_id = None
        if api.auth_required:
            session = self.sessions.get(cookies.get(SESSION_COOKIE))
            if session is None:
                return JSONResponse({"error": "Forbidden"}, status_code=403)
            user_id = session.user_id

        try:
            data_path = self.ctx.workspace_path(self.ctx.substitute(api.data))
            records = self._read_records(data_path)
            if method == "POST":
                return self._create(data_path, records, body, user_id)
            return self._fetch(records, candidate)
        except RequestError as exc:
            return JSONResponse({"error": f"Server error: {exc.message}"}, status_code=exc.status_code)
        except OSError as exc:
            logger.error("API '%s' failed: %s", api.name, exc)
            return JSONResponse({"error": f"Server error: {exc}"}, status_code=500)

    @staticmethod
    def _read_records(data_path: Path) -> List[Any]:
        if not data_path.exists():
            return []
        try:
            records = json.loads(data_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RequestError(f"{data_path.name} is not valid JSON: {exc.msg}") from exc
        if not isinstance(records, list):
            raise RequestError(f"{data_path.name} must hold a JSON array")
        return records

    @staticmethod
    def _create(data_path: Path, records: List[Any], body: bytes, user_id: Optional[str]) -> Response:
        try:
            entry = json.loads(body.decode("utf-8") if body else "")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RequestError(f"Malformed request body: {exc}") from exc
        if not isinstance(entry, dict):
            raise RequestError("Request body must be a JSON object")
        entry["id"] = next_id(records)
        if user_id is not None:
            entry["author"] = user_id
        records.append(entry)
        data_path.parent.mkdir(parents=True, exist_ok=True)
        data_path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        return JSONResponse(entry, status_code=201)

    @staticmethod
    def _fetch(records: List[Any], candidate: str) -> Response:
        if not (candidate.isascii() and candidate.isdigit()):
            return JSONResponse(records)
        wanted = int(candidate)
        for record in records:
            if isinstance(record, dict) and _same_id(record.get("id"), wanted):
                return JSONResponse(record)
        return JSONResponse({"error": "Not found"}, status_code=404)

    # ------------------------------------------------------------------
    # Static files
    # ------------------------------------------------------------------
    def _asset(self, relative: str) -> Optional[Path]:
        root = self.public_dir.resolve()
        try:
            target = (root / relative.lstrip("/")).resolve()
        except (OSError, ValueError):
            return None
        if target != root and root not in target.parents:
            return None
        return target if target.is_file() else None

    def _static(self, path: str) -> Response:
        asset = self._asset(self.declaration.landing if path == "/" else path)
        status = 200
        if asset is None:
            status = 404
            asset = self._asset(self.declaration.not_found)
            if asset is None:
                return PlainTextResponse("404 Not Found", status_code=404)
        try:
            content = asset.read_bytes()
        except OSError as exc:
            logger.error("Could not read %s: %s", asset, exc)
            return PlainTextResponse("500 Internal Server Error", status_code=500)
        return Response(content, status_code=status, media_type=content_type_for(asset))


__all__ = ["RequestHandler", "MIME_TYPES", "content_type_for", "next_id"]
