import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from aigrading.core.config import settings
from aigrading.api.api_v1.api import api_router

# --- LOGGING ---
# Format: [time] [level] [module] message
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

# Log to stdout so container runtimes pick it up
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[
        logging.StreamHandler(sys.stdout)
    ],
    force=True
)

# httpx logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)
# ----------------------------------

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)

@app.on_event("startup")
async def startup_event():
    logger.info("🚀 AI grading service started")
    logger.info(f"🔧 Backend={settings.GRADING_BACKEND} ({settings.base_url}), Model={settings.MODEL_NAME}")
    if not settings.API_KEY:
        logger.warning("⚠️ API_KEY is not set; grading requests will be rejected")
