# mathmentor/api/errors.py
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mathmentor.services.errors import AIServiceError

logger = logging.getLogger(__name__)


async def ai_service_exception_handler(request: Request, exc: AIServiceError):
    logger.error("[API] %s %s -> %s: %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=exc.http_status,
        content={
            "success": False,
            "error": {
                "code": exc.code,
                "reason": exc.reason,
                "message": str(exc),
                "upstream_status": exc.status_code,
            },
        },
    )


def register_exception_handlers(app: FastAPI):
    # subclasses (rate limit, quota, credentials, hint) resolve to this handler too
    app.add_exception_handler(AIServiceError, ai_service_exception_handler)
