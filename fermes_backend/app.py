import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fermes_backend.application import get_occupancy_service, get_store
from fermes_backend.core.settings import Settings, load_settings
from fermes_backend.routes import fermes, housing, stock
from fermes_backend.workers.reconcile import ReconcileScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    numeric = getattr(logging, level, logging.INFO)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("fermes_backend").setLevel(numeric)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    occupancy = get_occupancy_service()
    occupancy.thresholds = settings.thresholds

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if settings.auto_reconcile:
            scheduler = ReconcileScheduler(occupancy, get_store(), delay=settings.reconcile_debounce)
            scheduler.start()
            logger.info("Occupancy reconciliation debounced at %.1fs", settings.reconcile_debounce)
        app.state.reconcile_scheduler = scheduler
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(title="Fermes Housing & Stock API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(fermes.router, prefix="/api")
    app.include_router(housing.router, prefix="/api")
    app.include_router(stock.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Fermes Housing & Stock API",
                "docs": "/docs",
                "health": "/api/fermes",
            }
        )

    return app


app = create_app()
