"""External SQL connections declared with the ``mysql:`` directive."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from tontoo.errors import DirectiveRuntimeError, QueryError

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.runtime.connections")

DEFAULT_DRIVER = "mysql+pymysql"


def build_url(config: Mapping[str, str]) -> URL | str:
    """Build a SQLAlchemy URL from a block; an explicit ``url`` wins."""
    if config.get("url"):
        return config["url"]
    port = config.get("port")
    return URL.create(
        drivername=config.get("driver") or DEFAULT_DRIVER,
        username=config.get("user") or None,
        password=config.get("password") or None,
        host=config.get("host") or None,
        port=int(port) if port else None,
        database=config.get("database") or None,
    )


class SQLConnection:
    """A named engine exposing ``query(sql, params) -> rows``."""

    def __init__(self, connection_id: str, engine: Engine) -> None:
        self.connection_id = connection_id
        self.engine = engine

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(sql), dict(params or {}))
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            raise QueryError(f"Query on '{self.connection_id}' failed: {exc}") from exc

    def close(self) -> None:
        self.engine.dispose()


def connect(ctx: "RuntimeContext", connection_id: str, config: Mapping[str, str]) -> SQLConnection:
    """
    Open connection ``connection_id`` and register ``<id>_query``.

    Values are substituted before use. A failed first connect disposes
    the engine and raises :class:`DirectiveRuntimeError`.
    """
    resolved = {key: ctx.substitute(value) for key, value in config.items()}
    try:
        engine = create_engine(build_url(resolved))
    except (SQLAlchemyError, ValueError, ImportError) as exc:
        raise DirectiveRuntimeError(f'Error creating SQL connection "{connection_id}": {exc}') from exc
    try:
        with engine.connect():
            pass
    except SQLAlchemyError as exc:
        engine.dispose()
        raise DirectiveRuntimeError(f'Error creating SQL connection "{connection_id}": {exc}') from exc

    previous = ctx.connections.get(connection_id)
    if previous is not None:
        previous.close()
    connection = SQLConnection(connection_id, engine)
    ctx.connections[connection_id] = connection
    ctx.variables[f"{connection_id}_query"] = connection.query
    logger.info('SQL connection "%s" established successfully.', connection_id)
    return connection


__all__ = ["SQLConnection", "connect", "build_url", "DEFAULT_DRIVER"]
