"""FastAPI application entrypoint."""
import logging
import sys
from fastapi import FastAPI

from klinepipe import __version__
from klinepipe.config import Config
from klinepipe.factory import build_pipeline
from klinepipe.orchestrator.api import router as runs_router
from klinepipe.scheduler.router import router as scheduler_router
from klinepipe.schemas import MessageResponse
from klinepipe.storage.router import router as klines_router

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Validate config on startup
try:
    Config.validate()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    sys.exit(1)

app = FastAPI(title="Kline Fan-Out Pipeline", version=__version__)

app.include_router(runs_router)
app.include_router(klines_router)
app.include_router(scheduler_router)


@app.on_event("startup")
async def startup_event() -> None:
    """Build the pipeline once; routes read it from app.state."""
    logger.info("Initializing kline pipeline...")
    try:
        app.state.pipeline = await build_pipeline(Config)
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}", exc_info=True)
        raise

    if Config.SCHEDULER_AUTOSTART:
        app.state.pipeline.trigger.start()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Cleanup on shutdown."""
    logger.info("Shutting down...")
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        return
    try:
        await pipeline.close()
    except Exception as e:
        logger.warning(f"Error closing pipeline: {e}")


@app.get("/health", response_model=MessageResponse)
async def health_check() -> MessageResponse:
    """Health check endpoint."""
    return MessageResponse(message="OK")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {Config.APP_NAME} v{__version__} on 0.0.0.0:8000")
    logger.info(f"Market Data Provider: {Config.MARKET_DATA_PROVIDER}")
    logger.info(f"Storage backend: {Config.STORAGE_BACKEND}")

    uvicorn.run(
        "klinepipe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False
    )
