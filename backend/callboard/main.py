import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callboard.api import analysis, calls, events, health, webhooks
from callboard.core.config import settings
from callboard.core.database import Base, engine
from callboard.services.events import EventPublisher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(webhooks.router)
app.include_router(analysis.router)
app.include_router(calls.router)
app.include_router(events.router)


@app.on_event("startup")
async def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    app.state.publisher = EventPublisher(settings.redis_url, channel=settings.events_channel)
    if not app.state.publisher.enabled:
        logger.warning("REDIS_URL not set; live call events are disabled")
    logger.info("%s started (%s)", settings.app_name, settings.environment)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    publisher = getattr(app.state, "publisher", None)
    if publisher:
        await publisher.close()
