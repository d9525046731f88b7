"""
Assessment engine API: quiz generation, scoring and learner progress
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from app.config import settings
from app.database import init_db
from app.api import modules, assessments, questions
from app.services.exceptions import ServiceError
from app.utils.rate_limiter import rate_limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Backend for e-learning assessments: quiz generation, scoring, history and progress"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Monitoring and API docs are never throttled
UNTHROTTLED_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@app.middleware("http")
async def throttle(request: Request, call_next):
    if request.url.path not in UNTHROTTLED_PATHS:
        try:
            await rate_limiter.check_rate_limit(request)
        except HTTPException as e:
            return JSONResponse(status_code=e.status_code, content=e.detail)
    return await call_next(request)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"in {time.perf_counter() - started:.3f}s"
    )
    return response


def error_response(status_code: int, error: str, message, **extra) -> JSONResponse:
    """Uniform error body used by every exception handler"""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "status_code": status_code, **extra}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    return error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
        detail=str(exc) if settings.DEBUG else None
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Map service-layer errors to their HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"Service error: {exc.message}", exc_info=exc.original_exception)
    return error_response(exc.status_code, "http_error", exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, "http_error", exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as a bad request"""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(400, "validation_error", message)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.APP_VERSION}


app.include_router(modules.router)
app.include_router(assessments.router)
app.include_router(questions.router)


@app.on_event("startup")
async def create_tables():
    init_db()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} ready")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
