"""
Main application file
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from redis.exceptions import RedisError

from activation_api.api.routes.api.activation_meetings import router as activation_meetings_router
from activation_api.api.routes.api.activations import router as activations_router
from activation_api.api.routes.api.activator_availability import router as availability_router
from activation_api.api.routes.api.admin import router as admin_router
from activation_api.api.routes.api.control_tower import router as control_tower_router
from activation_api.api.routes.api.cron import router as cron_router
from activation_api.api.routes.auth import router as auth_router
from activation_api.config import get_settings

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


# --- Lifespan handler ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    redis_client = None
    settings = get_settings()

    try:
        # --- Connect to Redis (optional; backs the booking lock) ---
        if settings.redis_url:
            logger.info("Initializing Redis...")
            try:
                redis_client = Redis.from_url(settings.redis_url, decode_responses=False)
                await redis_client.ping()
                app.state.redis_client = redis_client
                logger.info("Redis connection successful.")
            except (RedisError, OSError) as e:
                logger.error("Redis connection failed: %s", e)
                raise RuntimeError("Failed to connect to Redis") from e
        else:
            app.state.redis_client = None
            logger.warning("REDIS_URL not set - booking lock disabled")

        yield

    finally:
        # --- Shutdown cleanup ---
        if redis_client:
            try:
                await redis_client.aclose()
                logger.info("Redis connection closed.")
            except RedisError as e:
                logger.error("Error closing Redis connection: %s", e)


app = FastAPI(title="Activation API", lifespan=lifespan)

allowed_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# Add FRONTEND_URL from environment if set
frontend_url = get_settings().frontend_url
if frontend_url and frontend_url not in allowed_origins:
    allowed_origins.append(frontend_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],  # Allow all methods including OPTIONS for preflight
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"status": "ok"}


app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(
    activation_meetings_router,
    prefix="/activation-meetings",
    tags=["activation-meetings"],
)
app.include_router(activations_router, prefix="/activations", tags=["activations"])
app.include_router(
    availability_router,
    prefix="/activator-availability",
    tags=["activator-availability"],
)
app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(control_tower_router, prefix="/control-tower", tags=["control-tower"])
app.include_router(cron_router, prefix="/cron", tags=["cron"])
