# backend/saferoute/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse

from saferoute import settings
from saferoute.routes.reports import router as reports_router

log = logging.getLogger("uvicorn.error")

# admin page dev servers (vite, live-server, ...) on any local port
LOCAL_ORIGINS = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def normalize_prefix(prefix: str) -> str:
    """'api', '/api/' and '/api' all mount as '/api'; blank mounts at the root."""
    prefix = (prefix or "").strip().strip("/")
    return f"/{prefix}" if prefix else ""


def cors_options(origins: list[str]) -> dict:
    if origins:
        return dict(allow_origins=origins, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])
    return dict(allow_origin_regex=LOCAL_ORIGINS, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    # boto3 tables are opened at import; only a running server needs them
    from saferoute.db.adapters import DynamoDirectory, DynamoReportStore
    from saferoute.services.console import ReportsConsole

    session = settings.session_from_env()
    console = ReportsConsole(session, DynamoDirectory(), DynamoReportStore())
    console.start(settings.REPORTS_POLL_SECONDS)
    app.state.console = console
    try:
        yield
    finally:
        await console.stop()
        app.state.console = None


API_PREFIX = normalize_prefix(settings.API_PREFIX)

app = FastAPI(
    title="SafeRoute Reports API",
    version="1.0.0",
    description="Admin console over incident reports (enrichment, filters, export).",
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, **cors_options(settings.CORS_ORIGINS))
log.info("CORS origins: %s", settings.CORS_ORIGINS or "local dev only")

app.include_router(reports_router, prefix=API_PREFIX)


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")


@app.get(f"{API_PREFIX}/health", tags=["meta"])
def health():
    return {"status": "ok", "prefix": API_PREFIX}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("saferoute.main:app", host="0.0.0.0", port=settings.PORT)
