from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from dotenv import load_dotenv
from pathlib import Path
import logging

# Load environment variables early
_env_path = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_env_path)

from .config import get_settings  # noqa: E402
from .database import engine, init_db  # noqa: E402
from .observability import (  # noqa: E402
    setup_logging,
    init_sentry,
    setup_metrics_middleware,
    get_health_check,
)
from .routes import photos as photos_routes  # noqa: E402
from .storage import get_blob_store  # noqa: E402

settings = get_settings()

# Setup observability
setup_logging(settings.log_level)
init_sentry(settings)

# Application logger
logger = logging.getLogger("photoalbum")

app = FastAPI(title="Photo Album API")

setup_metrics_middleware(app)

app.include_router(photos_routes.router)


@app.on_event("startup")
async def on_startup():
    logger.info(
        "Starting photo album (env=%s, storage=%s)",
        settings.environment,
        settings.storage_provider,
    )
    await init_db()
    # Fail fast on a misconfigured backend rather than on the first upload.
    await run_in_threadpool(get_blob_store().ensure_ready)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return await get_health_check(engine, settings)


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
