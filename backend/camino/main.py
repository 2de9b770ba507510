"""Main FastAPI application for the Camino planner backend."""
from fastapi import FastAPI, Request

from camino.api.routes.chat import router as chat_router
from camino.api.routes.plans import router as plans_router
from camino.core.config import settings
from camino.core.logging import configure_logging
from camino.core.middleware import RequestIDMiddleware
from camino.observability.client import init_opik
from camino.observability.tracing import trace
from camino.worker.eviction import start_eviction_scheduler, stop_eviction_scheduler

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(chat_router)
app.include_router(plans_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("startup")
async def startup_eviction() -> None:
    app.state.eviction_scheduler = start_eviction_scheduler()


@app.on_event("shutdown")
async def shutdown_eviction() -> None:
    stop_eviction_scheduler(getattr(app.state, "eviction_scheduler", None))


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
