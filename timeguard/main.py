"""
TimeGuard FastAPI Application — Time-tracking compliance engine.

  POST /compliance/run            → queue a rule evaluation pass
  GET  /compliance/overview       → dashboard counters
  GET  /compliance/trends         → daily compliance-rate series
  *    /compliance/violations     → list, inspect, resolve/ignore
  *    /config/compliance-rules   → read/update thresholds
  GET  /managers/{id}/...         → scorecard and team compliance
  GET  /projects/...              → long-running, high-spent and overrun reports
  GET  /health                    → {"status": "ok"}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timeguard.api.dependencies import get_entity_store
from timeguard.api.routes.compliance import router as compliance_router
from timeguard.api.routes.config import router as config_router
from timeguard.api.routes.health import router as health_router
from timeguard.api.routes.managers import router as managers_router
from timeguard.api.routes.projects import router as projects_router
from timeguard.config import settings
from timeguard.errors import TimeGuardError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("timeguard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed the entity mirror from a JSON dump when one is configured."""
    if settings.entity_snapshot_path:
        get_entity_store().load_json(settings.entity_snapshot_path)
        logger.info(f"Entity mirror seeded from {settings.entity_snapshot_path}")
    yield


app = FastAPI(
    title="TimeGuard",
    description="Time-tracking compliance violation detection and aggregation",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(compliance_router)
app.include_router(config_router)
app.include_router(managers_router)
app.include_router(projects_router)


@app.exception_handler(TimeGuardError)
async def timeguard_exception_handler(request: Request, exc: TimeGuardError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.http_status} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    logger.error(f"Validation Error. Raw body: {body.decode('utf-8')[:500]} | Errors: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(), "body": body.decode("utf-8")[:100]},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("timeguard.main:app", host=settings.host, port=settings.port)
