import logging
import time
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from mapsy.core.config import settings
from mapsy.core.exceptions import AppError, InternalError, ValidationError
from mapsy.core.logging import configure_logging
from mapsy.core.mongo import ensure_indexes, mongo_db
from mapsy.controllers import auth_controller, chat_controller, vision_controller
from mapsy.utils.response import error_response, success_response

configure_logging()
logger = logging.getLogger("mapsy")

STARTED_AT = time.monotonic()

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials="*" not in settings.cors_origin_list,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
    return response

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    errors = exc.errors if isinstance(exc, ValidationError) else None
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=exc.message, errors=errors, code=exc.code),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # drop the leading "body"/"query" location segment
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=400,
        content=error_response(message="Validation failed", errors=errors, code="VALIDATION_ERROR"),
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code_map = {
        400: "BAD_REQUEST",
        401: "INVALID_TOKEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), code=code_map.get(exc.status_code, "HTTP_ERROR")),
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError("Internal server error")
    return JSONResponse(
        status_code=error.status_code,
        content=error_response(message=error.message, code=error.code),
    )

# Include routers
app.include_router(auth_controller.router)
app.include_router(chat_controller.router)
app.include_router(vision_controller.router)

@app.on_event("startup")
async def on_startup():
    logger.info("Starting up: ensuring MongoDB indexes...")
    await ensure_indexes(mongo_db)
    logger.info("Startup complete")

@app.get("/")
async def root():
    return {
        "message": "Mapsy API is running",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/auth",
            "vision": "/api/vision",
            "chat": "/api/chat",
            "docs": "/docs",
        }
    }

@app.get("/health")
async def health_check():
    return success_response(
        message="Server is healthy",
        data={
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3),
        },
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mapsy.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
