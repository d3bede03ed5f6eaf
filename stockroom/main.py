from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from stockroom.config import get_settings
from stockroom.database import engine, Base
from stockroom.models import category, movement, product, user  # noqa: F401  (register tables)
from stockroom.api import dashboard, health, movements, products, users

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info("Starting up inventory ledger...")
    Base.metadata.create_all(bind=engine)
    logger.info(
        f"Database tables ready (atomic quantity updates: {settings.ATOMIC_QUANTITY_UPDATES}, "
        f"negative stock policy: {settings.NEGATIVE_STOCK_POLICY})"
    )

    yield

    logger.info("Shutting down inventory ledger...")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Inventory tracking backend for the mobile stock client:

    - **Products**: create products with stock limits, look them up by scanned ID
    - **Movements**: register stock entries and exits, browse the log, revert mistakes
    - **Users**: register authenticated identities in the user directory
    - **Dashboard**: stock value, limit breaches, most and least moved products

    ## Movements and stock

    Every accepted movement changes the product quantity and writes exactly one
    movement row. Reverting deletes the row and applies the inverse change.
    Quantity changes go through an atomic `UPDATE ... SET quantity = quantity + :delta`,
    so concurrent scans of the same product never overwrite each other.

    ## Authentication

    Requests carry a bearer token issued by the identity service; its `sub`
    claim is the user id.
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(movements.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health"
    }
