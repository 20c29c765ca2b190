"""
FastAPI application entry point.
Main application instance with middleware and route configuration.
"""
from fastapi import FastAPI, Request, status, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
import logging

from portfolio.config import settings
from portfolio.database import get_db, init_db, close_db
from portfolio.services.cloudinary_service import validate_cloudinary_config
from portfolio.routes import auth, gallery, links

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,  # Auth travels in the Authorization header, not cookies
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its response status."""
    method = request.method
    path = request.url.path
    logger.debug(f"Incoming {method} request to {path} from origin: {request.headers.get('origin', 'No origin header')}")

    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code} for {method} {path}")
        return response
    except Exception as e:
        logger.error(
            f"Error processing {method} {path}: {str(e)}\n"
            f"  Error type: {type(e).__name__}",
            exc_info=True
        )
        raise


app.include_router(gallery.router, prefix="/api", tags=["gallery"])
app.include_router(links.router, prefix="/api", tags=["links"])
app.include_router(auth.router, prefix="/api", tags=["auth"])


def add_cors_headers(response: JSONResponse, request: Request) -> JSONResponse:
    """
    Echo the CORS origin on error responses so the SPA can read the error body.
    """
    origin = request.headers.get("origin")
    if origin and origin in settings.CORS_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Vary"] = "Origin"
    return response


# Exception Handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions (401, 404, 409, ...) with CORS headers."""
    logger.warning(
        f"HTTPException on {request.method} {request.url.path}: "
        f"{exc.status_code} {exc.detail}"
    )

    # Handle both string and dict detail formats
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail, "detail": str(exc.detail)}

    response = JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
    )
    return add_cors_headers(response, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Handle request validation errors (missing fields, width out of range, ...)."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )
    response = JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation error",
            "detail": jsonable_errors(exc)
        }
    )
    return add_cors_headers(response, request)


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with the non-serializable ctx/input entries dropped."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}:\n"
        f"  Error: {str(exc)}\n"
        f"  Error type: {type(exc).__name__}",
        exc_info=True
    )
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred"
        }
    )
    return add_cors_headers(response, request)


# Root Endpoints
@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """
    Database health check endpoint.
    Tests database connection and returns status.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        return {
            "database": "connected",
            "status": "healthy",
            "result": result.scalar()
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}", exc_info=True)
        return {
            "database": "error",
            "status": "unhealthy",
            "error": "Database connection failed"
        }


@app.get("/health/storage")
async def health_check_storage():
    """
    Object storage health check endpoint.
    Validates Cloudinary configuration.
    """
    if validate_cloudinary_config():
        return {
            "storage": "configured",
            "status": "healthy",
            "cloud_name": settings.CLOUDINARY_CLOUD_NAME
        }
    return {
        "storage": "not_configured",
        "status": "warning",
        "message": "Cloudinary credentials not set in environment variables"
    }


@app.on_event("startup")
async def startup_event():
    """
    Initialize database connection on application startup.
    Non-blocking: app will start even if database connection fails.
    """
    logger.info(f"CORS allowed origins: {settings.CORS_ORIGINS}")

    try:
        await init_db()
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(
            f"Failed to initialize database on startup: {str(e)}\n"
            f"The application will continue to run, but database-dependent endpoints will fail."
        )


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on application shutdown."""
    await close_db()
