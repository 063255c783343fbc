import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from mealsync.core.config import LOG_FORMAT, PROJECT_NAME, VERSION, Settings, get_settings
from mealsync.core.db import init_db, close_db
from mealsync.core.exception_handlers import setup_exception_handlers
from mealsync.api.v1.events import router as events_router
from mealsync.api.v1.operations import router as operations_router
from mealsync.services.writer import BatchedTransactionalWriter, WriterOptions
from mealsync.stores import AppwriteStore, LocalStore, RecordStore

log = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    """Picks the store backend named by the settings."""
    if settings.store_backend == "local":
        return LocalStore(max_operations=settings.max_operations_per_transaction)
    return AppwriteStore(settings, bulk=settings.staging_mode == "bulk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    log.info(f"Starting {PROJECT_NAME} v{VERSION} with the {settings.store_backend} store...")

    if settings.store_backend == "local":
        await init_db(settings.database_url)  # Connect to DB and generate schemas

    store = build_store(settings)
    app.state.settings = settings
    app.state.writer = BatchedTransactionalWriter(store, WriterOptions.from_settings(settings))
    yield
    await store.close()
    if settings.store_backend == "local":
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
app.include_router(events_router, prefix="/api/v1/events", tags=["Products Lists"])
app.include_router(operations_router, prefix="/api/v1/operations", tags=["Product Operations"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
