"""
HTTP status server.

``GET /`` runs one evaluation cycle per request and returns the status payload;
``GET /health`` only reports that the process is alive.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.errors import MonitorError
from .core.monitor import SystemMonitor

logger = logging.getLogger("sysmon.server")


def create_app(monitor: SystemMonitor) -> FastAPI:
    app = FastAPI(title="sysmon", docs_url=None, redoc_url=None)

    # Plain def handlers run in the threadpool, so requests can overlap.
    @app.get("/")
    def status(request: Request):
        client = request.client.host if request.client else "-"
        logger.info("GET / from %s", client)
        try:
            result = monitor.run_cycle()
        except MonitorError as e:
            logger.error("Cycle failed: %s", e)
            return JSONResponse(
                status_code=500,
                content={"status": "ERROR", "info": [str(e)]},
            )
        return result.status.to_dict()

    @app.get("/health")
    def health():
        return {"status": "OK"}

    return app
