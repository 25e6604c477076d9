from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from api.routes import router
from persistence.initializer import Persistence
from utils.env_loader import load_environments
from utils.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_environments()
    configure_logging()
    persistence = Persistence()
    app.state.persistence = persistence
    logger.info("persistence_starting", engine=persistence.config.engine)
    await persistence.initialize()

    yield

    await persistence.close()
    logger.info("persistence_stopped")


app = FastAPI(
    title="RecIMS Persistence API",
    version="0.1.0",
    description="Health and diagnostics for the dual-backend persistence layer",
    lifespan=lifespan,
)
app.include_router(router)
