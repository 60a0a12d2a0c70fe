"""
Solar Marketplace - FastAPI Backend

This is the main entry point for the Python backend that handles:
- Marketplace users, RFQs, quotes, promotions and products
- Utility rate schedules, bills and rate provider sync
- Solar billing, billing cycles and net metering
- Load profiling and rate/TOU optimization
- Equipment compatibility and regulatory compliance
"""

from dotenv import load_dotenv

# Load environment variables FIRST - before importing modules that need them
load_dotenv()

# Now import modules that depend on environment variables
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Dict
import os
import logging

from api.users import router as users_router
from api.marketplace import router as marketplace_router
from api.utility_rates import router as utility_rates_router
from api.billing import router as billing_router
from api.net_metering import router as net_metering_router
from api.optimization import router as optimization_router
from api.equipment import router as equipment_router
from api.compliance import router as compliance_router

from db.database import init_data_store, close_data_store, health_check as store_health_check
from db.marketplace_repository import MarketplaceRepository
from db.user_repository import MockUserRepository
from services.errors import SolarAppError

from middleware.rate_limiter import setup_rate_limiting, limiter, limit_health

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


# Lifespan handler for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: open the mock data store and seed users and the sample catalogue
    store = init_data_store()
    user_count = MockUserRepository(store).seed()
    MarketplaceRepository(store).seed_catalogue()
    logger.info(f"Mock data store ready with {user_count} users")
    yield
    # Shutdown: persist the store (when file-backed)
    close_data_store()


# Initialize FastAPI application
app = FastAPI(
    title="Solar Marketplace API",
    description="Backend API for the solar marketplace: RFQs and quotes, utility billing, net metering, rate optimization, equipment compatibility and regulatory compliance",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Setup rate limiting (before other middleware)
setup_rate_limiting(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js development server
        "http://localhost:3001",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(SolarAppError)
async def solar_app_error_handler(request: Request, exc: SolarAppError) -> JSONResponse:
    """Render service errors as {"error", "message", "details"} with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register API routers
app.include_router(users_router)
app.include_router(marketplace_router)
app.include_router(utility_rates_router)
app.include_router(billing_router)
app.include_router(net_metering_router)
app.include_router(optimization_router)
app.include_router(equipment_router)
app.include_router(compliance_router)


@app.get("/", response_model=Dict[str, str])
@limit_health
async def root(request: Request) -> Dict[str, str]:
    """
    Root endpoint with API information.

    Returns:
        Dict containing API name, version, and documentation links
    """
    return {
        "service": "Solar Marketplace API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "status": "running",
    }


@app.get("/health", response_model=Dict[str, str])
@limit_health
async def health_check(request: Request) -> Dict[str, str]:
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        Dict with health status and service information
    """
    return {
        "status": "healthy" if store_health_check() else "degraded",
        "service": "solar-marketplace-backend",
        "version": "1.0.0",
    }


if __name__ == "__main__":
    import uvicorn

    # Run with: python main.py
    # Or use: uvicorn main:app --reload --port 8000
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
