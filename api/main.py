"""
Wholesale Vehicle Marketplace API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.exception_handlers import register_exception_handlers
from config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("api")

# Create FastAPI application
app = FastAPI(
    title="Wholesale Vehicle Marketplace API",
    description="REST API for dealer buy codes, offers and vehicle inventory",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS_ORIGINS="*" allows every origin (development default)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    """Log `METHOD path status in Nms` for API calls."""
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "%s %s %s in %dms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    return response


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "vehicle-marketplace-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Wholesale Vehicle Marketplace API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import auth, buy_codes, dealers, offers, transactions, uploads, vehicles

app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(vehicles.router, prefix="/api", tags=["Vehicles"])
app.include_router(offers.router, prefix="/api", tags=["Offers"])
app.include_router(buy_codes.router, prefix="/api", tags=["Buy Codes"])
app.include_router(transactions.router, prefix="/api", tags=["Transactions"])
app.include_router(dealers.router, prefix="/api", tags=["Dealers"])
app.include_router(uploads.router, prefix="/api", tags=["Uploads"])
