# mathmentor/config.py
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = BACKEND_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings:
    DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
    DB_PORT = int(os.getenv("DB_PORT", "5432"))
    DB_NAME = os.getenv("DB_NAME", "mathmentor")
    DB_USER = os.getenv("DB_USER", "mathmentor")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "mathmentor_pwd")
    # full URL wins over the DB_* parts (tests point this at sqlite)
    DATABASE_URL = os.getenv("DATABASE_URL", "")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # OpenAI-compatible chat completions gateway
    AI_API_KEY = os.getenv("AI_API_KEY", "")
    AI_BASE_URL = os.getenv("AI_BASE_URL", "https://ai.gateway.lovable.dev/v1")
    AI_MODEL = os.getenv("AI_MODEL", "google/gemini-2.5-flash")
    AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "60"))

    UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BACKEND_DIR / "uploads")))
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))
    MAX_PDF_PAGES = int(os.getenv("MAX_PDF_PAGES", "5"))

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

settings = Settings()
logger.info(
    "[CONFIG] Loaded env=%s db_host=%s ai_model=%s ai_key_set=%s",
    settings.ENVIRONMENT, settings.DB_HOST, settings.AI_MODEL, bool(settings.AI_API_KEY),
)
