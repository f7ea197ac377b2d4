"""
MilkWay FastAPI application.

Startup sequence:
1. Upload directories (farm images, avatars)

All routers are mounted with the /api prefix; uploaded files are served
from /uploads.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from milkway.config import settings
from milkway.errors import register_exception_handlers
from milkway.routers import auth, farms, reviews, users, wishlist
from milkway.schemas.common import HealthResponse
from milkway.services.storage_service import ensure_upload_dirs

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- Startup ----
    logger.info("Starting MilkWay API (%s)...", settings.APP_ENV)
    ensure_upload_dirs()
    logger.info("MilkWay API ready.")
    yield
    # ---- Shutdown ----
    logger.info("MilkWay API stopped.")


app = FastAPI(
    title="MilkWay API",
    description=(
        "Dairy farm marketplace: farmers list farms, buyers discover them by "
        "text, availability, rating, features and distance, then review and save them."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

_origins = ["*"] if settings.CLIENT_URL == "*" else [settings.CLIENT_URL]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    # credentials cannot be combined with a wildcard origin
    allow_credentials=_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ---- Register routers ----
_PREFIX = "/api"

app.include_router(auth.router, prefix=_PREFIX)
app.include_router(farms.router, prefix=_PREFIX)
app.include_router(reviews.router, prefix=_PREFIX)
app.include_router(wishlist.router, prefix=_PREFIX)
app.include_router(users.router, prefix=_PREFIX)

app.mount(
    "/uploads",
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.get("/api/health", response_model=HealthResponse, tags=["admin"])
async def health_check():
    return HealthResponse(
        status="OK",
        message="MilkWay API is running",
        timestamp=datetime.now(tz=timezone.utc).isoformat(),
    )
