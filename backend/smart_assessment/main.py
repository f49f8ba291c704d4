import asyncio
import logging

from fastapi import FastAPI

from .db import Base, engine, get_db, ensure_schema
from .cleanup import purge_stale_sessions
from .settings import settings
from .routers import health
from .routers import auth
from .routers import subjects
from .routers import evaluations
from .routers import breadcrumbs

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Assessment API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(subjects.router)
app.include_router(evaluations.router)
app.include_router(breadcrumbs.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"lm_studio_api_url": settings.lm_studio_api_url,
		"lm_studio_model": settings.lm_studio_model,
	}


def _purge_once() -> None:
	db = next(get_db())
	try:
		removed = purge_stale_sessions(db)
		if removed:
			logger.info("Purged %d stale sessions", removed)
	except Exception:
		logger.exception("Session cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_purge_once()


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	# Best-effort cleanup at startup
	_purge_once()
	asyncio.create_task(_cleanup_watcher())
