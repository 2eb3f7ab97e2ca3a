from loguru import logger
from blip.core.db import engine, Base

# Import all models so SQLAlchemy registers them
from blip.models.user import User
from blip.models.presence import Presence
from blip.models.signal import Signal, MutualSignal
from blip.models.reveal import Reveal, Interaction
from blip.models.report import Report

def init_db():
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
