"""JSON logging with per-request context for the matching service."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hackmatch.settings import settings

_LOGGER_NAME = "hackmatch"

_CONTEXT: Dict[str, ContextVar[Optional[str]]] = {
	"request_id": ContextVar("hackmatch_request_id", default=None),
	"route": ContextVar("hackmatch_route", default=None),
	"user_id": ContextVar("hackmatch_user_id", default=None),
}

# Profile free text and credentials never reach the log stream.
_REDACTED_KEYS = ("token", "secret", "authorization", "password", "email", "phone", "bio")

_MAX_TEXT = 256
_MAX_ITEMS = 10

# Everything a bare LogRecord carries is formatter input, not an extra field.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_NOISY_LOGGERS = ("socketio", "engineio", "asyncio")


def bind_context(**fields: Optional[str]) -> Dict[str, Token]:
	"""Bind request-scoped fields; pass the result to ``reset_context`` afterwards."""
	tokens: Dict[str, Token] = {}
	for name, value in fields.items():
		var = _CONTEXT.get(name)
		if var is not None and value is not None:
			tokens[name] = var.set(value)
	return tokens


def reset_context(tokens: Dict[str, Token]) -> None:
	for name, token in tokens.items():
		_CONTEXT[name].reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT["request_id"].get()


def _clean(key: str, value: Any) -> Any:
	if any(word in key.lower() for word in _REDACTED_KEYS):
		return "[redacted]"
	if isinstance(value, str) and len(value) > _MAX_TEXT:
		return value[:_MAX_TEXT] + "..."
	if isinstance(value, dict):
		items = list(value.items())
		cleaned = {str(k): _clean(str(k), v) for k, v in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			cleaned["..."] = f"+{len(items) - _MAX_ITEMS} keys"
		return cleaned
	if isinstance(value, (list, tuple, set, frozenset)):
		seq = [_clean(key, item) for item in list(value)[:_MAX_ITEMS]]
		if len(value) > _MAX_ITEMS:
			seq.append(f"+{len(value) - _MAX_ITEMS} more")
		return seq
	return value


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line: fixed service fields, bound context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for name, var in _CONTEXT.items():
			value = var.get()
			if value:
				payload[name] = value
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = _clean(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a share of info records; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(0.0, rate)


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	for name in _NOISY_LOGGERS:
		logging.getLogger(name).setLevel(logging.WARNING)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
