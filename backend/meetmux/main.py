"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meetmux.api import connections, events, live, ops, users
from meetmux.api.errors import install_error_handlers
from meetmux.domain import container
from meetmux.domain.presence.sockets import RealtimeNamespace, set_namespace
from meetmux.infra import postgres
from meetmux.infra.schema import ensure_schema
from meetmux.obs import init as obs_init
from meetmux.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.storage_backend == "postgres":
		pool = await postgres.init_pool()
		if pool is not None:
			await ensure_schema(pool)
			container.configure_postgres(pool)
			logger.info("storage backend ready backend=postgres")
	else:
		logger.info("storage backend ready backend=memory")
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="MeetMux API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:5173"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = (
		["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000", "http://127.0.0.1:3000"]
		if settings.is_dev()
		else [origin for origin in allow_origins if origin != "*"]
	)

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
realtime_namespace = RealtimeNamespace()
sio.register_namespace(realtime_namespace)
set_namespace(realtime_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(events.router, tags=["events"])
app.include_router(connections.router, tags=["connections"])
app.include_router(users.router, tags=["users"])
app.include_router(live.router, tags=["live"])
app.include_router(ops.router, tags=["ops"])
