# mathmentor/api/routes_documents.py
import logging
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from mathmentor.api.deps import current_user_id, get_gateway, get_storage, get_store
from mathmentor.config import settings
from mathmentor.models.document import Document, DocumentStatus
from mathmentor.models.question import Question
from mathmentor.services.ai_gateway import AIGateway
from mathmentor.services.extraction_service import ExtractionService
from mathmentor.services.storage_service import ALLOWED_CONTENT_TYPES, LocalFileStorage
from mathmentor.services.store import SqlStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _document_to_dict(d: Document) -> Dict[str, Any]:
    return {
        "id": str(d.id),
        "filename": d.filename,
        "file_url": d.file_url,
        "content_type": d.content_type,
        "status": d.status,
        "uploaded_at": d.uploaded_at,
    }


def _question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": str(q.id),
        "document_id": str(q.document_id),
        "question_number": q.question_number,
        "question_text": q.question_text,
        "sort_order": q.sort_order,
    }


async def _read_upload(file: UploadFile) -> bytes:
    data = bytearray()
    chunk_size = 1024 * 1024  # 1MB chunks
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds maximum allowed size of {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
            )
    return bytes(data)


def _visible_document(store: SqlStore, document_id: uuid.UUID, user_id: str) -> Document:
    doc = store.get_document(document_id, user_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


async def _run_extraction(
    store: SqlStore, gateway: AIGateway, doc: Document, content: bytes
) -> Dict[str, Any]:
    service = ExtractionService(gateway, store, max_pages=settings.MAX_PDF_PAGES)
    try:
        await service.extract(doc.id, content, doc.content_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    questions = store.list_questions(doc.id)
    return {
        "success": True,
        "documentId": str(doc.id),
        "status": DocumentStatus.COMPLETED.value,
        "questionsCount": len(questions),
        "questions": [_question_to_dict(q) for q in questions],
    }


@router.post("")
async def upload_document(
    file: UploadFile = File(...),
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
    storage: LocalFileStorage = Depends(get_storage),
    gateway: AIGateway = Depends(get_gateway),
):
    """Store the upload, create the document and extract its questions."""
    content_type = (file.content_type or "").lower()
    if content_type == "image/jpg":
        content_type = "image/jpeg"
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Upload a PNG, JPEG, WEBP image or a PDF.")

    content = await _read_upload(file)
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")

    filename = file.filename or "document"
    file_url = storage.save(content, filename)
    doc = store.create_document(filename, file_url, content_type, user_id)
    logger.info("[DOCS] created document=%s filename=%s owner=%s", doc.id, filename, user_id)

    return await _run_extraction(store, gateway, doc, content)


@router.post("/{document_id}/process")
async def reprocess_document(
    document_id: uuid.UUID,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
    storage: LocalFileStorage = Depends(get_storage),
    gateway: AIGateway = Depends(get_gateway),
):
    """Retry extraction for a document whose first run failed (rate limit, quota, outage)."""
    doc = _visible_document(store, document_id, user_id)
    if doc.status != DocumentStatus.FAILED.value:
        raise HTTPException(status_code=409, detail=f"Only failed documents can be reprocessed (status is {doc.status})")

    try:
        content = storage.read(doc.file_url)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Stored file is missing")

    store.set_document_status(doc.id, DocumentStatus.PROCESSING)
    return await _run_extraction(store, gateway, doc, content)


@router.get("")
def list_documents(
    limit: int = 50,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    return [_document_to_dict(d) for d in store.list_documents(user_id, limit=limit)]


@router.get("/{document_id}")
def get_document(
    document_id: uuid.UUID,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
) -> Dict[str, Any]:
    return _document_to_dict(_visible_document(store, document_id, user_id))


@router.get("/{document_id}/questions")
def list_questions(
    document_id: uuid.UUID,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    doc = _visible_document(store, document_id, user_id)
    return [_question_to_dict(q) for q in store.list_questions(doc.id)]


@router.delete("/{document_id}")
def delete_document(
    document_id: uuid.UUID,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
    storage: LocalFileStorage = Depends(get_storage),
):
    doc = _visible_document(store, document_id, user_id)
    store.delete_document(doc.id)
    if doc.file_url:
        storage.delete(doc.file_url)
    return {"success": True, "deleted": str(doc.id)}
