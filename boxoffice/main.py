import logging

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from boxoffice import config  # noqa: E402
from boxoffice.api.base import api_router  # noqa: E402
from boxoffice.features.fulfillment.scheduler import BackgroundDispatcher  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.background_dispatcher = BackgroundDispatcher(config.WEBHOOK_MAX_CONCURRENCY)
    logger.info(
        f"Webhook processing ready (env: {config.APP_ENV}, max concurrency: {config.WEBHOOK_MAX_CONCURRENCY})"
    )
    yield
    logger.info(f"Shutting down, draining {app.state.background_dispatcher.in_flight} webhook job(s)")
    await app.state.background_dispatcher.drain(config.WEBHOOK_SHUTDOWN_TIMEOUT)


app = FastAPI(
    title="Boxoffice Backend API",
    description="Ticketing backend: payment webhooks, orders and tickets",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Specify your frontend URL in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all API routes
app.include_router(api_router)


@app.get("/")
def read_root():
    return {
        "message": "Boxoffice Backend API",
        "docs": "/docs",
        "version": "1.0.0"
    }
