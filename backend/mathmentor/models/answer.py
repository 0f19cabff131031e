# mathmentor/models/answer.py
import enum
import uuid
from typing import Optional
from sqlalchemy import CheckConstraint, Column, Text, Boolean, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from mathmentor.services.db import Base

class GradeOutcome(str, enum.Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNGRADABLE = "ungradable"

class Answer(Base):
    __tablename__ = "student_answers"
    __table_args__ = (
        CheckConstraint("NOT (cannot_grade AND is_correct IS NOT NULL)", name="ck_student_answers_tristate"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    student_answer = Column(Text, nullable=False)

    # NULL until graded, and stays NULL when the model could not grade
    is_correct = Column(Boolean, nullable=True)
    cannot_grade = Column(Boolean, nullable=False, default=False)
    feedback = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    question = relationship("Question", back_populates="answers")

    @property
    def outcome(self) -> Optional[GradeOutcome]:
        """None while the answer has not been graded yet."""
        if self.cannot_grade:
            return GradeOutcome.UNGRADABLE
        if self.is_correct is None:
            return None
        return GradeOutcome.CORRECT if self.is_correct else GradeOutcome.INCORRECT
