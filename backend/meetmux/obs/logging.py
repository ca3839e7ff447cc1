"""JSON logging with per-request and per-channel context.

HTTP middleware binds request fields, the realtime namespace binds the
channel (and its user once authenticated). Every record carries whatever
is bound in the current task.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from meetmux.settings import settings

_LOGGER_NAME = "meetmux"

# Output key for each bindable field
_CONTEXT_FIELDS = {
	"request_id": "request_id",
	"route": "route",
	"user_id": "user_id",
	"client_ip": "ip",
	"channel_id": "channel_id",
}
_CONTEXT: Dict[str, ContextVar[Optional[str]]] = {
	name: ContextVar(f"obs_{name}", default=None) for name in _CONTEXT_FIELDS
}

# Positions are personal data; nothing matching these names reaches the log line
_REDACT = (
	"token",
	"secret",
	"authorization",
	"password",
	"email",
	"payload",
	"lat",
	"lng",
	"latitude",
	"longitude",
	"location",
	"points",
)

_MAX_STRING_LENGTH = 256
_MAX_ITEMS = 10

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Dict[str, Token]:
	"""Bind known context fields for the current task; None values are skipped."""
	tokens: Dict[str, Token] = {}
	for name, value in fields.items():
		if value is None:
			continue
		if name not in _CONTEXT:
			raise KeyError(f"unknown log context field: {name}")
		tokens[name] = _CONTEXT[name].set(str(value))
	return tokens


def reset_context(tokens: Dict[str, Token]) -> None:
	for name, token in tokens.items():
		_CONTEXT[name].reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT["request_id"].get()


def _redacted(key: str) -> bool:
	lowered = key.lower()
	return any(word == lowered or lowered.endswith(f"_{word}") or lowered.startswith(f"{word}_") for word in _REDACT)


def _clean(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else f"{value[:_MAX_STRING_LENGTH]}…"
	if isinstance(value, dict):
		cleaned = {}
		for key, nested in list(value.items())[:_MAX_ITEMS]:
			cleaned[key] = "[redacted]" if _redacted(str(key)) else _clean(nested)
		if len(value) > _MAX_ITEMS:
			cleaned["…"] = f"+{len(value) - _MAX_ITEMS} keys"
		return cleaned
	if isinstance(value, (list, tuple, set, frozenset)):
		items = [_clean(item) for item in list(value)[:_MAX_ITEMS]]
		if len(value) > _MAX_ITEMS:
			items.append("…")
		return items
	return value


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		line: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for name, var in _CONTEXT.items():
			bound = var.get()
			if bound:
				line[_CONTEXT_FIELDS[name]] = bound
		if record.exc_info:
			line["exc_info"] = self.formatException(record.exc_info)
		for key, value in record.__dict__.items():
			if key in _RECORD_ATTRS or key in line:
				continue
			line[key] = "[redacted]" if _redacted(key) else _clean(value)
		return json.dumps(line, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a fraction of info records; everything else passes."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = max(0.0, min(1.0, settings.obs_log_sampling_rate_info))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
