# mathmentor/services/storage_service.py
import logging
import os
import time
import uuid
from pathlib import Path
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "application/pdf"}


def get_unique_filename(original_filename: str) -> str:
    """Timestamp + short random suffix; keeps the original extension."""
    _, ext = os.path.splitext(original_filename or "")
    return f"{int(time.time())}-{uuid.uuid4().hex[:12]}{ext.lower()}"


class LocalFileStorage:
    """Stores uploads on disk and hands back the public url the app serves them under (/files)."""

    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, content: bytes, filename: str) -> str:
        name = get_unique_filename(filename)
        path = self.root / name
        with open(path, "wb") as f:
            f.write(content)
        logger.info("[STORAGE] saved %s (%d bytes)", name, len(content))
        return f"{self.public_base_url}/files/{name}"

    def path_for(self, url: str) -> Path:
        name = os.path.basename(urlsplit(url).path)
        if not name:
            raise FileNotFoundError(url)
        return self.root / name

    def read(self, url: str) -> bytes:
        with open(self.path_for(url), "rb") as f:
            return f.read()

    def delete(self, url: str) -> None:
        try:
            self.path_for(url).unlink()
        except FileNotFoundError:
            logger.warning("[STORAGE] %s already gone", url)
