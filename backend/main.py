"""
Remiss network Backend API
FastAPI REST server for entity co-occurrence compute and network reads
"""
from dotenv import load_dotenv
load_dotenv()  # Load .env file before any other imports

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api import cooccurrence, network
from backend.config import settings
from backend.db_pool import close_asyncpg_pool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Remiss Network API",
    description="Entity co-occurrence graph over remiss (consultation) participation",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# CORS Middleware - must be first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Every HTTP error is returned as {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("shutdown")
async def shutdown():
    """Close database connections on shutdown"""
    await close_asyncpg_pool()
    logger.info("Database connections closed")


# Include API routers
app.include_router(cooccurrence.router)  # Admin compute job, has its own prefix
app.include_router(network.router)  # Network graph reads, has its own prefix


@app.get("/health")
async def health_check():
    """Public health check endpoint for external monitoring."""
    return {"status": "healthy", "service": "remiss-network-api"}
