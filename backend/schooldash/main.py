from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from schooldash.config import settings
from schooldash.api import battery, dashboard, health
from schooldash.db.kv import init_store, close_store

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="School Dashboard API",
    description="Weather, bus departures and the class timetable for an e-ink display",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(",") if settings.allowed_origins != "*" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Startup event
@app.on_event("startup")
async def startup():
    logger.info("Starting School Dashboard API")
    logger.info(f"Environment: {settings.environment}")
    await init_store()

# Shutdown event
@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down School Dashboard API")
    await close_store()

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(dashboard.router, prefix="/api", tags=["dashboard"])
app.include_router(battery.router, prefix="/api", tags=["battery"])

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "School Dashboard API",
        "version": "0.1.0",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("schooldash.main:app", host="0.0.0.0", port=settings.api_port)
