from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from gymdesk.core.config import settings
from gymdesk.core.exceptions import GymDeskError
from gymdesk.core.logging_config import get_logger  # ensure file logging is registered at startup

logger = get_logger("main")

app = FastAPI(
    title="GymDesk API",
    description="Gym front desk: members, plans, attendance and point of sale",
    version="1.0.0",
    redirect_slashes=False,
)

# Import router after app creation to catch import errors
try:
    from gymdesk.api.v1.api import api_router
    logger.info("Successfully imported api_router")
except Exception as e:
    logger.error(f"Failed to import api_router: {e}", exc_info=True)
    raise


@app.on_event("startup")
async def startup_event():
    """Application startup. Migrations are run by run_server.py before uvicorn starts."""
    logger.info("=== Application startup complete ===")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def get_cors_headers(request: Request) -> dict:
    """Get CORS headers based on request origin"""
    origin = request.headers.get("origin")
    if origin and origin in settings.CORS_ORIGINS:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        }
    return {}


HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


@app.exception_handler(GymDeskError)
async def gymdesk_exception_handler(request: Request, exc: GymDeskError):
    """Domain errors raised by services and dependencies"""
    headers = {**get_cors_headers(request), **(exc.headers or {})}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to ensure CORS headers are always sent"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = {"error": "Internal server error", "code": "internal_error"}
    if settings.DEBUG:
        content["details"] = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=get_cors_headers(request),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP exception handler with CORS headers (unknown routes, wrong methods)"""
    headers = {**get_cors_headers(request), **(getattr(exc, "headers", None) or {})}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": HTTP_ERROR_CODES.get(exc.status_code, "http_error")},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 with the pydantic errors as details."""
    details = [
        {
            "loc": list(err.get("loc") or []),
            "msg": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    logger.warning(f"Validation failed on {request.method} {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "code": "validation_error", "details": details},
        headers=get_cors_headers(request),
    )

try:
    app.include_router(api_router, prefix="/api/v1")
    logger.info("Successfully included api_router")
except Exception as e:
    logger.error(f"Failed to include api_router: {e}", exc_info=True)
    raise


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.APP_NAME}
