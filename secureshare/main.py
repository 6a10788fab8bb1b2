from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI

from secureshare import __version__
from secureshare.api.errors import register_error_handlers
from secureshare.api.routes import router as slots_router
from secureshare.config.settings import Settings
from secureshare.logger import configure_logging, get_logger
from secureshare.services.slot_service import SlotService
from secureshare.services.sweep_scheduler import SweepScheduler

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, service: Optional[SlotService] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)
    service = service or SlotService.from_settings(settings)
    sweeper = SweepScheduler(
        service,
        interval_minutes=settings.sweep_interval_minutes,
        orphan_grace=timedelta(minutes=settings.orphan_blob_grace_minutes),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.sweep_enabled:
            sweeper.start()
        try:
            yield
        finally:
            sweeper.shutdown()
            service.close()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.slot_service = service
    app.state.sweeper = sweeper
    register_error_handlers(app)
    app.include_router(slots_router)
    return app
