# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.base import Base
from app.db.session import engine

# Register tables on Base.metadata
from app.models import assignment, challenge_activity, quiz  # noqa: F401

# Import routers (router objects, not modules)
from app.api.assignments import router as assignments_router
from app.api.quizzes import router as quizzes_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="FTG Assessment Engine",
    version="1.0.0",
    lifespan=lifespan,
)

# --------------------------------------------------
# CORS CONFIG
# --------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    # expo dev server ports on localhost
    allow_origin_regex=r"http://localhost(:[0-9]+)?",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------------------------------------------
# API ROUTES
# --------------------------------------------------

# Admin assignments (sequential questionnaire)
app.include_router(
    assignments_router,
    prefix="/api/v1",
)

# Bonus quizzes (scored, single attempt)
app.include_router(
    quizzes_router,
    prefix="/api/v1",
)

# --------------------------------------------------
# ROOT HEALTH CHECK
# --------------------------------------------------
@app.get("/")
def health_check():
    return {
        "status": "ok",
        "service": "FTG Assessment Engine",
        "version": "1.0.0"
    }
