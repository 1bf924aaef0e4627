# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings, validate_settings
from database import create_indexes, close_mongo_connection
from routers import auth, courses, enrollments
from utils.errors import register_exception_handlers
from utils.rate_limiter import RateLimitSweeper, rate_limit_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings(settings)
    logger.info("🚀 Starting E-Learning API (environment: %s)", settings.ENVIRONMENT)
    await create_indexes()
    sweeper = RateLimitSweeper(rate_limit_store, settings.RATE_LIMIT_SWEEP_SECONDS)
    sweeper.start()
    app.state.rate_limit_sweeper = sweeper
    yield
    # Shutdown
    await sweeper.stop()
    await close_mongo_connection()


app = FastAPI(
    title="E-Learning API",
    version="1.0.0",
    description="Authentication, course catalog and enrollment progress tracking",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(enrollments.router)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=r"https://.*\.vercel\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"success": True, "message": "Server is running"}
