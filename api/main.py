"""
FastAPI application initialization
"""

from fastapi import FastAPI
import uvicorn
from api.routes import health, runs, watermark
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from delta_load.scheduler import LoadScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Internet Sales Delta Load API",
    description="Status and manual trigger for the FactInternetSales to InternetSales_Staging delta load",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

scheduler = LoadScheduler()


app.include_router(health.router)
app.include_router(watermark.router)
app.include_router(runs.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Internet Sales Delta Load API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Internet Sales Delta Load API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Internet Sales Delta Load API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "watermark": "/watermark",
            "runs": "/runs"
        }
    }


def serve():
    """Run the API with uvicorn on API_HOST:API_PORT"""
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    serve()
