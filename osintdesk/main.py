"""
osintdesk API application.

Startup wires the Celery client used to hand jobs to the tool worker and,
on an empty database, provisions the default admin profile.
"""

import logging
from logging import Filter, getLogger

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from osintdesk import __version__
from osintdesk.api.v1.helpers.responses import register_exception_handlers
from osintdesk.api.v1.router import api_router
from osintdesk.bootstrap import ensure_default_admin
from osintdesk.celery_app import get_celery_app
from osintdesk.config import settings
from osintdesk.core.tools import TOOLS
from osintdesk.db.session import dispose_engine, get_session_local

logger = getLogger(__name__)
logger.setLevel(logging.INFO)


class HealthCheckFilter(Filter):
    """Keep load-balancer health checks out of the access log."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "/health" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Run OSINT tools as tracked jobs, group results into "
    "investigations and compile them into shareable reports.",
    debug=settings.debug,
    redirect_slashes=False,
)
register_exception_handlers(app)


async def _provision_admin() -> None:
    AsyncSessionLocal = get_session_local()
    async with AsyncSessionLocal() as db:
        try:
            admin = await ensure_default_admin(db)
        except Exception:
            logger.exception("Bootstrap of the default admin failed")
            return
    if admin is None:
        logger.info("Profiles present, skipping admin bootstrap")


@app.on_event("startup")
async def startup_event():
    logger.info(f"--- Starting {settings.app_name} {__version__} ---")
    app.state.celery_app = get_celery_app()
    logger.info(
        f"Dispatching to queue '{settings.tool_queue_name}' "
        f"({len(TOOLS)} tools registered)"
    )
    await _provision_admin()
    logger.info("--- Startup completed ---")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("--- Shutting down ---")
    try:
        await dispose_engine()
    except Exception as e:
        logger.error(f"Error while closing database connections: {e}")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.app_name}", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
