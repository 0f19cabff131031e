# mathmentor/models/question.py
import uuid
from sqlalchemy import Column, Text, Integer, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from mathmentor.services.db import Base

class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)

    # display label as printed on the sheet ("1a", "2ii", "3(i)"); not sortable
    question_number = Column(Text, nullable=False)
    question_text = Column(Text, nullable=False)
    # position in the extraction output; governs display order
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="questions")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan", passive_deletes=True)
