from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from flask import Flask, g, has_request_context, request

from rental_inventory.config import Config

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Route arguments worth lifting onto every log line of a request
_ROUTE_KEYS = ("variant_id", "product_id")

_CONTEXT_FIELDS = ("request_id", "method", "path", "endpoint") + _ROUTE_KEYS

MAX_REQUEST_ID_LENGTH = 128


class RequestContextFilter(logging.Filter):
    """Tag records with the current request and the variant/product it targets."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _request_context() if has_request_context() else {}
        for name in _CONTEXT_FIELDS:
            # Values passed explicitly through ``extra=`` win over the route's
            if getattr(record, name, None) is None:
                setattr(record, name, context.get(name))
        return True


def _request_context() -> Dict[str, Any]:
    view_args = request.view_args or {}
    context: Dict[str, Any] = {
        "request_id": getattr(g, "request_id", None),
        "method": request.method,
        "path": request.path,
        "endpoint": request.endpoint,
    }
    for key in _ROUTE_KEYS:
        context[key] = view_args.get(key)
    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per line, ``extra=`` fields included, empty context dropped."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": Config.APP_NAME,
            "env": Config.APP_ENV,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            if value is None and key in _CONTEXT_FIELDS:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(app: Flask) -> None:
    """Configure global logging once, respecting Config toggles."""

    # Statement logging only when explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if Config.SQL_ECHO else logging.WARNING)

    if not Config.STRUCTURED_LOGS_ENABLED:
        app.logger.setLevel(Config.LOG_LEVEL)
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(Config.LOG_LEVEL)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestContextFilter())

    # Replace handlers so a reload does not duplicate output
    root_logger.handlers = [handler]
    app.logger.handlers = [handler]

    app.logger.debug("Structured logging configured for %s.", Config.APP_NAME)


def _clean_request_id(incoming: Optional[str]) -> Optional[str]:
    if not incoming:
        return None
    incoming = incoming.strip()
    if not incoming or len(incoming) > MAX_REQUEST_ID_LENGTH:
        return None
    return incoming


def ensure_request_id() -> str:
    """Return the active request id, adopting the caller's header when it is usable."""
    if getattr(g, "request_id", None):
        return g.request_id
    g.request_id = _clean_request_id(request.headers.get(Config.REQUEST_ID_HEADER)) or uuid4().hex
    return g.request_id
