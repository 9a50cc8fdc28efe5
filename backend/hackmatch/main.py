"""HackMatch API entrypoint: FastAPI app, Socket.IO mount and storage wiring."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hackmatch.api import matchmaking, ops
from hackmatch.api.errors import install_error_handlers
from hackmatch.domain.matchmaking import container
from hackmatch.domain.matchmaking.profiles import InMemoryProfileStore, load_profiles_file
from hackmatch.domain.matchmaking.sockets import MatchmakingNamespace, set_namespace
from hackmatch.infra import postgres
from hackmatch.infra.redis import close_redis, redis_client
from hackmatch.obs import init as obs_init
from hackmatch.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.matchmaking_backend == "postgres":
		pool = await postgres.init_pool()
		container.configure_postgres(pool, redis_client)
	else:
		seed = load_profiles_file(settings.matchmaking_seed_path) if settings.matchmaking_seed_path else []
		container.configure_memory(profiles=InMemoryProfileStore(seed))
	logger.info(
		"hackmatch.started",
		extra={
			"backend": settings.matchmaking_backend,
			"queue_backend": settings.matchmaking_queue_backend,
		},
	)
	try:
		yield
	finally:
		await postgres.close_pool()
		if settings.matchmaking_queue_backend == "redis":
			await close_redis()


app = FastAPI(title="HackMatch Teammate Matching", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
matchmaking_namespace = MatchmakingNamespace()
sio.register_namespace(matchmaking_namespace)
set_namespace(matchmaking_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(matchmaking.router, tags=["matchmaking"])
app.include_router(ops.router, tags=["ops"])
