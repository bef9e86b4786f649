"""
Stock Ledger FastAPI Main Application
Entry point for the stock ledger REST API
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import sys

from stockledger.core.config import settings
from stockledger.core.database import check_db_connection, init_db
from stockledger.core.exceptions import StockLedgerException
from stockledger.core.logging import setup_logging, get_logger
from stockledger.api.v1.api_router import api_router

setup_logging()
logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown

    Verify the database and create missing tables before serving
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        if not check_db_connection():
            logger.error("Failed to connect to database on startup")
            raise RuntimeError("Database connection failed")

        logger.info("Database connection established")
        init_db()
        logger.info("Application startup completed successfully")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        sys.exit(1)

    yield

    logger.info("Shutting down application")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Stock Ledger API

    Tracks how much of each printing material or accessory remains.

    ### Key Features:
    - **Batch creation**: N identical spools or accessories in one step
    - **Usage ledger**: usage events that adjust the remaining balance atomically
    - **Lifecycle**: open / deplete / restore for consumables, start / stop use for durables
    - **Alerts**: low stock and replacement-due entries computed on request
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
            "debug": settings.DEBUG
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "docs_url": settings.DOCS_URL,
        "features": [
            "Batch stock item creation",
            "Usage ledger with running balance",
            "Item lifecycle",
            "Low stock and replacement alerts"
        ]
    }


@app.exception_handler(StockLedgerException)
async def stock_ledger_exception_handler(request: Request, exc: StockLedgerException):
    """
    Ledger errors are expected outcomes: report them with their own status
    """
    logger.info(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "detail": exc.message,
        }
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
            "type": "server_error"
        }
    )


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stockledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
