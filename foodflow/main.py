import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from foodflow.core.db import init_db, close_db
from foodflow.api.v1.orders import router as orders_router
from foodflow.api.v1.ratings import router as ratings_router
from foodflow.core.config import API_PREFIX, PROJECT_NAME, VERSION
from foodflow.core.exception_handlers import setup_exception_handlers

log = logging.getLogger("foodflow")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas
    yield
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)

# Include routers for modular API structure
app.include_router(orders_router, prefix=f"{API_PREFIX}/orders", tags=["Order Workflow"])
app.include_router(ratings_router, prefix=f"{API_PREFIX}/ratings", tags=["Ratings"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
