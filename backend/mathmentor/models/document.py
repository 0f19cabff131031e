# mathmentor/models/document.py
import enum
import uuid
from sqlalchemy import CheckConstraint, Column, String, Text, DateTime, Uuid, func
from sqlalchemy.orm import relationship
from mathmentor.services.db import Base

class DocumentStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("status IN ('processing', 'completed', 'failed')", name="ck_documents_status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    filename = Column(String, nullable=False)
    file_url = Column(Text, nullable=True)
    content_type = Column(String(128), nullable=True)
    status = Column(String(16), nullable=False, default=DocumentStatus.PROCESSING.value)
    owner_id = Column(String(64), nullable=False, index=True)

    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    questions = relationship(
        "Question",
        back_populates="document",
        order_by="Question.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
