import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from app.api.routes import get_generation_backend, router
from app.config import settings
from app.logging_config import setup_logging
from app.services.backend import GenerationBackend

logger = logging.getLogger("outreach_assistant")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    logger.info("=" * 60)
    logger.info("Application starting up...")
    backend = get_generation_backend()
    if backend.name == "live":
        logger.info("✓ Live backend, model %s", settings.openai_model)
    else:
        logger.info("⚠ Mock backend: set OPENAI_API_KEY (and BACKEND=auto|live) for live generation")
    logger.info(
        "Contact clamp %d..%d, default %d",
        settings.min_contacts,
        settings.max_contacts,
        settings.default_max_contacts,
    )
    logger.info("=" * 60)
    yield


app = FastAPI(
    title="Outreach Assistant API",
    description="Analyze an outreach goal, find matching contacts and draft personalized messages.",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/health")
async def health(backend: GenerationBackend = Depends(get_generation_backend)):
    return {"status": "ok", "backend": backend.name}
