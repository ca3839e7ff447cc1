"""HTTP middleware: request ids, Prometheus request metrics and access logs."""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from meetmux.obs import logging as obs_logging
from meetmux.obs import metrics


def _route_label(request: Request) -> str:
	# Templates keep the label set bounded; unknown paths share one bucket
	route = request.scope.get("route")
	return getattr(route, "path", None) or "unmatched"


def _inbound_request_id(request: Request) -> Optional[str]:
	rid = (request.headers.get("X-Request-Id") or "").strip()
	# Client-supplied ids end up in logs; only accept short printable tokens
	if rid and len(rid) <= 128 and rid.isprintable():
		return rid
	return None


class RequestIdMiddleware(BaseHTTPMiddleware):
	"""Binds a request id to request.state and echoes it as X-Request-Id."""

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		rid = _inbound_request_id(request) or str(uuid4())
		request.state.request_id = rid
		response = await call_next(request)
		response.headers.setdefault("X-Request-Id", rid)
		return response


class AccessLogMiddleware(BaseHTTPMiddleware):
	"""Counts and times every request and writes one access log line for it."""

	def __init__(self, app, *, enabled: bool = True) -> None:
		super().__init__(app)
		self._enabled = enabled
		self._logger = obs_logging.get_logger("meetmux.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not self._enabled:
			return await call_next(request)

		client = request.client
		tokens = obs_logging.bind_context(
			request_id=getattr(request.state, "request_id", None),
			route=request.url.path,
			user_id=request.headers.get("X-User-Id"),
			client_ip=client.host if client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			return response
		except Exception:
			self._logger.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			metrics.observe_request(_route_label(request), request.method, status_code, elapsed)
			self._logger.info(
				"http_request",
				extra={"status": status_code, "method": request.method, "latency_ms": round(elapsed * 1000, 3)},
			)
			obs_logging.reset_context(tokens)


def install(app, *, enabled: bool = True) -> None:
	app.add_middleware(AccessLogMiddleware, enabled=enabled)
	# Added last so it wraps the access log layer and the id is bound first
	app.add_middleware(RequestIdMiddleware)
