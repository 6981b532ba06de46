import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from .core.config import settings
from .db.base import Base
from .db.session import engine
from .api.routes import router as api_router
from .services.stores import HttpRemoteStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    app.state.remote_store = None
    if settings.REMOTE_STORE_URL:
        app.state.remote_store = HttpRemoteStore(
            settings.REMOTE_STORE_URL,
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
            api_key=settings.REMOTE_STORE_API_KEY or None,
        )
        logger.info(f"Remote store enabled at {settings.REMOTE_STORE_URL}")
    else:
        logger.info("No remote store configured, family codes are checked locally only")
    yield
    if app.state.remote_store is not None:
        await app.state.remote_store.aclose()


app = FastAPI(title="TribeBoard API", version="0.1.0", lifespan=lifespan)
app.include_router(api_router)
