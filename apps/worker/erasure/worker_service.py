"""Cloud Run service entrypoint for the delete job worker."""

from __future__ import annotations

import os

from fastapi import FastAPI

from erasure.core.config import settings
from erasure.core.gcp_monitoring import configure_logging, setup_gcp_monitoring
from erasure.scheduler import DeleteJobScheduler
from erasure.worker import build_scheduler

app = FastAPI()
_scheduler: DeleteJobScheduler | None = None


def get_scheduler() -> DeleteJobScheduler | None:
    return _scheduler


@app.get("/health")
def health() -> dict:
    scheduler = get_scheduler()
    return {
        "status": "ok",
        "version": settings.VERSION,
        "scheduler_running": bool(scheduler and scheduler.running),
        "pending_audit_events": len(scheduler.outbox) if scheduler else 0,
    }


@app.on_event("startup")
async def _startup() -> None:
    global _scheduler
    monitoring = setup_gcp_monitoring(f"{settings.GCP_SERVICE_NAME}-worker")
    configure_logging(monitoring)
    _scheduler = build_scheduler(error_reporter=monitoring.error_reporter)
    _scheduler.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    if _scheduler:
        await _scheduler.stop()


def main() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    host = os.getenv("HOST", "0.0.0.0")
    # nosec B104 - Cloud Run requires binding to all interfaces.
    uvicorn.run("erasure.worker_service:app", host=host, port=port)


if __name__ == "__main__":
    main()
