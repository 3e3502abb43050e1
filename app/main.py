from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_dedup_cache, get_retry_driver, get_retry_scheduler
from app.api.router import api_router
from app.core.config import settings
from app.core.logger import configure_logging, get_logger
from app.services.retry_scheduler import RetryJobNotFoundError
from app.workers.periodic import PeriodicWorker
from app.workers.retry_driver import build_retry_workers

configure_logging()
logger = get_logger(component="FastAPI")

# Background workers and their tasks, kept for graceful shutdown
_workers: list[PeriodicWorker] = []
_worker_tasks: list[asyncio.Task] = []


async def _stop_workers() -> None:
    for worker, task in zip(_workers, _worker_tasks):
        try:
            await asyncio.wait_for(worker.shutdown(), timeout=5)
        except asyncio.TimeoutError:
            logger.warning("Worker did not stop in time, cancelling", worker=worker.name)
        except Exception as exc:
            logger.exception("Error during worker shutdown", worker=worker.name, error=str(exc))
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    _workers.clear()
    _worker_tasks.clear()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the retry driver and cleanup sweeps on startup, stop them on shutdown."""
    try:
        workers = build_retry_workers(
            driver=get_retry_driver(),
            retry_scheduler=get_retry_scheduler(),
            dedup_cache=get_dedup_cache(),
        )
        for worker in workers:
            _workers.append(worker)
            _worker_tasks.append(asyncio.create_task(worker.run_forever(), name=worker.name))
        logger.info("Background workers started", workers=[worker.name for worker in workers])
    except Exception as exc:
        logger.exception("Failed to start background workers", error=str(exc))

    yield  # Application runs here

    if _workers:
        logger.info("Shutting down background workers")
        await _stop_workers()
        logger.info("Background worker shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(title=settings.project_name, version="1.0.0", lifespan=lifespan)

    @app.exception_handler(RetryJobNotFoundError)
    async def handle_retry_job_not_found(_: Request, exc: RetryJobNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc), "error_code": "RETRY_JOB_NOT_FOUND"})

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
