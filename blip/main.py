from fastapi import FastAPI
from loguru import logger

from blip.core import config
from blip.core.clock import utcnow
from blip.core.logging import setup_logging
from blip.core.init_db import init_db
from blip.api.errors import install_error_handlers
from blip.api.router import api_router
from blip.schemas.users import HealthResponse

setup_logging()
logger.info("Starting Blip backend")


app = FastAPI(
    title="Blip Backend",
    version=config.APP_VERSION,
)

install_error_handlers(app)

# All API routes (presence, signals, matches, reveals, reports, users, maintenance)
app.include_router(api_router)

# Init DB after app is created
init_db()

@app.get("/api/health", response_model=HealthResponse)
def health():
    logger.debug("Health check hit")
    return HealthResponse(status="healthy", timestamp=utcnow(), version=config.APP_VERSION)
