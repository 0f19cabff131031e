# mathmentor/services/store.py
import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import select, desc, update

from mathmentor.models.answer import Answer
from mathmentor.models.document import Document, DocumentStatus
from mathmentor.models.question import Question
from mathmentor.services.db import get_session

logger = logging.getLogger(__name__)


def _uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class SqlStore:
    """
    Create/read/update access to documents, questions and answers.

    Ownership: a document is visible only when its owner_id equals the
    caller's id; questions inherit visibility from their document.
    """

    def __init__(self, session_factory=get_session):
        self._session = session_factory

    # ---- documents

    def create_document(self, filename: str, file_url: str, content_type: Optional[str], owner_id: str) -> Document:
        with self._session() as s:
            doc = Document(
                filename=filename,
                file_url=file_url,
                content_type=content_type,
                owner_id=owner_id,
                status=DocumentStatus.PROCESSING.value,
            )
            s.add(doc)
            s.commit()
            s.refresh(doc)
            return doc

    def get_document(self, document_id, owner_id: str) -> Optional[Document]:
        with self._session() as s:
            doc = s.get(Document, _uuid(document_id))
            if doc is None or doc.owner_id != owner_id:
                return None
            return doc

    def list_documents(self, owner_id: str, limit: int = 50) -> List[Document]:
        with self._session() as s:
            stmt = (
                select(Document)
                .where(Document.owner_id == owner_id)
                .order_by(desc(Document.uploaded_at))
                .limit(limit)
            )
            return list(s.execute(stmt).scalars().all())

    def set_document_status(self, document_id, status: DocumentStatus) -> None:
        with self._session() as s:
            s.execute(
                update(Document)
                .where(Document.id == _uuid(document_id))
                .values(status=DocumentStatus(status).value)
            )
            s.commit()

    def delete_document(self, document_id) -> None:
        with self._session() as s:
            doc = s.get(Document, _uuid(document_id))
            if doc is not None:
                s.delete(doc)
                s.commit()

    # ---- questions

    def add_questions(self, document_id, drafts: Iterable) -> List[Question]:
        """Insert the whole batch in one transaction."""
        doc_id = _uuid(document_id)
        with self._session() as s:
            rows = [
                Question(
                    document_id=doc_id,
                    question_number=d.number,
                    question_text=d.text,
                    sort_order=d.sort_order,
                )
                for d in drafts
            ]
            try:
                s.add_all(rows)
                s.commit()
            except Exception:
                s.rollback()
                logger.exception("[STORE] question batch insert failed for document=%s", doc_id)
                raise
            for q in rows:
                s.refresh(q)
            return rows

    def list_questions(self, document_id) -> List[Question]:
        with self._session() as s:
            stmt = (
                select(Question)
                .where(Question.document_id == _uuid(document_id))
                .order_by(Question.sort_order, Question.created_at)
            )
            return list(s.execute(stmt).scalars().all())

    def get_question(self, question_id, owner_id: str) -> Optional[Question]:
        """The question plus its (visible) document, or None."""
        with self._session() as s:
            q = s.get(Question, _uuid(question_id))
            if q is None:
                return None
            # loaded here so q.document stays usable after the session closes
            doc = q.document
            if doc is None or doc.owner_id != owner_id:
                return None
            return q

    # ---- answers

    def create_answer(self, question_id, text: str) -> Answer:
        with self._session() as s:
            a = Answer(question_id=_uuid(question_id), student_answer=text)
            s.add(a)
            s.commit()
            s.refresh(a)
            return a

    def save_grade(self, answer_id, result) -> bool:
        """Single-row update of outcome + feedback; the last writer wins."""
        with self._session() as s:
            res = s.execute(
                update(Answer)
                .where(Answer.id == _uuid(answer_id))
                .values(
                    is_correct=result.is_correct,
                    cannot_grade=result.cannot_grade,
                    feedback=result.feedback,
                )
            )
            s.commit()
            if res.rowcount == 0:
                logger.warning("[STORE] save_grade: answer %s not found", answer_id)
            return res.rowcount > 0

    def list_answers(self, question_id, limit: int = 50) -> List[Answer]:
        with self._session() as s:
            stmt = (
                select(Answer)
                .where(Answer.question_id == _uuid(question_id))
                .order_by(desc(Answer.submitted_at))
                .limit(limit)
            )
            return list(s.execute(stmt).scalars().all())
