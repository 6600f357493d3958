from loguru import logger
from mediasync.core.db import Base, get_engine

# Import all models so SQLAlchemy registers them
from mediasync.models.media import MediaImage  # noqa: F401

def init_db():
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created")
