# mathmentor/api/routes_questions.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from mathmentor.api.deps import current_user_id, get_gateway, get_storage, get_store
from mathmentor.models.answer import Answer
from mathmentor.models.question import Question
from mathmentor.services.ai_gateway import AIGateway
from mathmentor.services.classify import DocumentKind, DocumentRef, classify_document
from mathmentor.services.evaluation_service import EvaluationService
from mathmentor.services.extraction_service import data_url
from mathmentor.services.hint_service import HintService
from mathmentor.services.storage_service import LocalFileStorage
from mathmentor.services.store import SqlStore

logger = logging.getLogger(__name__)
router = APIRouter()


class AnswerReq(BaseModel):
    answer: str


class HintReq(BaseModel):
    previousHints: List[str] = Field(default_factory=list)


def _answer_to_dict(a: Answer) -> Dict[str, Any]:
    outcome = a.outcome
    return {
        "id": str(a.id),
        "question_id": str(a.question_id),
        "student_answer": a.student_answer,
        "is_correct": a.is_correct,
        "cannot_grade": a.cannot_grade,
        "outcome": outcome.value if outcome else None,
        "feedback": a.feedback,
        "submitted_at": a.submitted_at,
    }


def _visible_question(store: SqlStore, question_id: uuid.UUID, user_id: str) -> Question:
    q = store.get_question(question_id, user_id)
    if q is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return q


def _document_ref(q: Question, storage: LocalFileStorage) -> Optional[DocumentRef]:
    """Image documents are inlined as data urls; the model cannot fetch our /files urls."""
    doc = q.document
    if doc is None or not doc.file_url:
        return None
    ref = DocumentRef(url=doc.file_url, media_type=doc.content_type, filename=doc.filename)
    if classify_document(ref) is not DocumentKind.IMAGE:
        return ref
    try:
        content = storage.read(doc.file_url)
    except FileNotFoundError:
        logger.warning("[QUESTIONS] stored file for document=%s is missing, grading without it", doc.id)
        return None
    return DocumentRef(url=data_url(content, doc.content_type), media_type=doc.content_type, filename=doc.filename)


@router.post("/{question_id}/answers")
async def submit_answer(
    question_id: uuid.UUID,
    body: AnswerReq,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
    storage: LocalFileStorage = Depends(get_storage),
    gateway: AIGateway = Depends(get_gateway),
):
    """Record a new attempt and grade it. Every submission is its own row."""
    text = body.answer.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Answer must not be empty")

    q = _visible_question(store, question_id, user_id)
    answer = store.create_answer(q.id, text)

    service = EvaluationService(gateway, store)
    result = await service.evaluate(q.question_text, text, _document_ref(q, storage), answer_id=answer.id)

    return {
        "success": True,
        "answerId": str(answer.id),
        "isCorrect": result.is_correct,
        "cannotGrade": result.cannot_grade,
        "outcome": result.outcome.value,
        "feedback": result.feedback,
    }


@router.get("/{question_id}/answers")
def list_answers(
    question_id: uuid.UUID,
    limit: int = 50,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    q = _visible_question(store, question_id, user_id)
    return [_answer_to_dict(a) for a in store.list_answers(q.id, limit=limit)]


@router.post("/{question_id}/hints")
async def get_hint(
    question_id: uuid.UUID,
    body: HintReq,
    user_id: str = Depends(current_user_id),
    store: SqlStore = Depends(get_store),
    storage: LocalFileStorage = Depends(get_storage),
    gateway: AIGateway = Depends(get_gateway),
):
    q = _visible_question(store, question_id, user_id)
    hint = await HintService(gateway).get_hint(q.question_text, body.previousHints, _document_ref(q, storage))
    return {"success": True, "hint": hint}
