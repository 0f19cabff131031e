# mathmentor/api/deps.py
from typing import Optional
from fastapi import Header, HTTPException

from mathmentor.config import settings
from mathmentor.services.ai_gateway import AIGateway, GatewayConfig
from mathmentor.services.storage_service import LocalFileStorage
from mathmentor.services.store import SqlStore


def current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity as forwarded by the auth proxy. Every document and question route needs one."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


def get_store() -> SqlStore:
    return SqlStore()


def get_gateway() -> AIGateway:
    # raises MissingCredentialsError when AI_API_KEY is unset
    return AIGateway(GatewayConfig.from_settings(settings))


def get_storage() -> LocalFileStorage:
    return LocalFileStorage(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
