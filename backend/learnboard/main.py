"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from learnboard.api import ops
from learnboard.api.errors import install_error_handlers
from learnboard.infra import postgres
from learnboard.interactions import configure_from_settings
from learnboard.interactions import router as interactions_router
from learnboard.obs import init as obs_init
from learnboard.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	pool = None
	if settings.storage_backend.lower() == "postgres":
		pool = await postgres.init_pool()
	configure_from_settings(pool)
	logger.info(
		"startup",
		extra={
			"storage_backend": settings.storage_backend,
			"rate_limit_backend": settings.rate_limit_backend,
			"environment": settings.environment,
		},
	)
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Learnboard Interaction Engine", lifespan=lifespan)
install_error_handlers(app)
obs_init(app)

app.include_router(ops.router)
app.include_router(interactions_router)
