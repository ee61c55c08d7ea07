"""
zeroeval_core entry point.

Self-hosted single-tenant instance. On first startup auto-provisions a
default workspace and API key.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from zeroeval_core.config import settings, setup_opentelemetry
from zeroeval_core.api.v1.router import core_api_router
from zeroeval_core.db.session import get_session_local
from zeroeval_core.bootstrap import ensure_default_workspace
from logging import getLogger, Filter
import logging

logger = getLogger(__name__)
logger.setLevel(logging.INFO)


class HealthCheckFilter(Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("/health") == -1


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)


@app.on_event("startup")
async def startup_event():
    try:
        logger.info("--- Starting zeroeval_core startup ---")

        setup_opentelemetry()

        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as db:
            try:
                await ensure_default_workspace(db)
            except Exception as e:
                logger.error(f"Warning: Error during bootstrap: {e}")
            finally:
                await db.close()

        logger.info("--- zeroeval_core startup completed ---")
    except Exception as e:
        logger.error(f"Warning: Failed to setup resources: {e}")
        import traceback

        logger.error(f"Full traceback: {traceback.format_exc()}")


@app.on_event("shutdown")
async def shutdown_event():
    try:
        logger.info("--- Server shutting down! ---")

        from zeroeval_core.db.session import dispose_engine

        await dispose_engine()
        logger.info("--- Database connections closed. ---")
    except Exception as e:
        logger.error(f"Warning: Error during shutdown: {e}")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core_api_router)


@app.get("/")
def read_root():
    return {"message": "Welcome to ZeroEval Core"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
