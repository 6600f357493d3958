import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from loguru import logger

from mediasync.core import config
from mediasync.core.logging import setup_logging
from mediasync.core.init_db import init_db
from mediasync.api.router import api_router

load_dotenv()

setup_logging()
logger.info("Starting mediasync backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.MEDIA_BACKEND == "local":
        os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    # Init DB once the app is up
    init_db()
    yield


app = FastAPI(
    title="mediasync",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)

if config.MEDIA_BACKEND == "local":
    app.mount(
        config.UPLOAD_URL_PREFIX,
        StaticFiles(directory=config.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )

@app.get("/health")
def health():
    logger.debug("Health check hit")
    return {"status": "ok"}
