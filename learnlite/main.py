import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from learnlite.api.v1.notifications import router as notifications_router
from learnlite.core.config import DB_URL, LOG_LEVEL, PROJECT_NAME, VERSION, NotificationSettings
from learnlite.core.db import close_db, create_engine, create_session_factory, init_db
from learnlite.core.exception_handlers import setup_exception_handlers
from learnlite.core.logging import configure_logging
from learnlite.notifications import StatusReporter, build_dispatcher

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    configure_logging(LOG_LEVEL)
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")

    settings = NotificationSettings.from_env()
    engine = create_engine(DB_URL)
    await init_db(engine)  # Connect to DB and generate schemas
    session_factory = create_session_factory(engine)

    dispatcher = None
    if settings.enabled:
        dispatcher = build_dispatcher(settings, session_factory)
        try:
            await dispatcher.start()
        except Exception:
            await close_db(engine)
            raise
    else:
        log.info("Notifications dispatcher: disabled")

    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher
    app.state.status_reporter = StatusReporter(settings, dispatcher)
    yield

    if dispatcher is not None:
        await dispatcher.stop()  # Drain the in-flight cycle before closing connections
    await close_db(engine)
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["Notifications"])

setup_exception_handlers(app)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}


@app.get("/healthz", status_code=status.HTTP_200_OK)
async def liveness_check():
    """Liveness probe: the process is up and serving requests."""
    return {"ok": True}
