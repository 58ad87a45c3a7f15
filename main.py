from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from core.errors import ErrorCode, MediaError, media_error_to_http
from core.media import MediaManager
from core.response_envelope import error_response, http_exception_response
from core.scheduler import scheduler
from core.settings import get_settings
from services.file_service import run_scheduled_garbage_collection

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    MediaManager.configure_from_settings()

    if settings.file_gc_period_seconds > 0:
        scheduler.add_job(
            run_scheduled_garbage_collection,
            trigger=IntervalTrigger(seconds=settings.file_gc_period_seconds),
            id="file_garbage_collection",
            name="File upload garbage collection",
            replace_existing=True,
        )
        scheduler.start()

    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown()


app = FastAPI(lifespan=lifespan, title="Media API")
app.add_middleware(RequestIdMiddleware)
app.add_middleware(RequestTimingMiddleware)


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return http_exception_response(exc=exc, request=request)


@app.exception_handler(MediaError)
async def media_exception_handler(request: Request, exc: MediaError):
    return http_exception_response(exc=media_error_to_http(exc), request=request)


@app.exception_handler(RequestValidationError)
async def custom_validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=422,
        message="Validation error",
        data={"code": ErrorCode.VALIDATION_FAILED.value, "details": exc.errors()},
        request_id=getattr(request.state, "request_id", None),
    )


@app.exception_handler(Exception)
async def custom_exception_handler(request: Request, exc: Exception):
    details = str(exc) if (settings.debug_include_error_details and not settings.is_production) else None
    return error_response(
        status_code=500,
        message="Internal Server Error",
        data={"code": "INTERNAL_ERROR", "details": details},
        request_id=getattr(request.state, "request_id", None),
    )


@app.get("/health", tags=["Health"])
async def health_check():
    manager = MediaManager.get_instance()
    return {
        "status": "healthy",
        "media_handler": manager.handler.backend_name,
        "gc_scheduler": "running" if scheduler.running else "stopped",
    }


from api.v0.file_route import router as v0_file_route_router

app.include_router(v0_file_route_router)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
