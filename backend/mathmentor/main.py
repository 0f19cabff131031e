# mathmentor/main.py
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from mathmentor.api import routes_documents, routes_questions
from mathmentor.api.errors import register_exception_handlers
from mathmentor.config import settings
from mathmentor.services.db import init_db, get_session

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("mathmentor")

app = FastAPI(title="MathMentor API")

@app.on_event("startup")
def _startup():
    logger.info("[APP] startup: calling init_db() …")
    init_db()
    logger.info("[APP] startup: init_db() done.")

@app.on_event("shutdown")
def _shutdown():
    logger.info("[APP] shutdown: bye")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)
register_exception_handlers(app)

@app.get("/health")
def health():
    try:
        with get_session() as s:
            s.execute(text("SELECT 1"))
        return {"ok": True}
    except Exception as e:
        logger.error("[APP] health check failed: %s", e)
        return {"ok": False, "error": str(e)}

settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=str(settings.UPLOAD_DIR)), name="files")

app.include_router(routes_documents.router, prefix="/documents", tags=["Documents"])
app.include_router(routes_questions.router, prefix="/questions", tags=["Questions"])
logger.info("[APP] Routers mounted: /documents, /questions")
