"""documents, questions, student_answers

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="processing"),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('processing', 'completed', 'failed')", name="ck_documents_status"),
    )
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])

    op.create_table(
        "questions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_number", sa.Text(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_questions_document_id", "questions", ["document_id"])

    op.create_table(
        "student_answers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("question_id", sa.Uuid(), sa.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_answer", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("cannot_grade", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        # ungradable answers carry no verdict
        sa.CheckConstraint("NOT (cannot_grade AND is_correct IS NOT NULL)", name="ck_student_answers_tristate"),
    )
    op.create_index("ix_student_answers_question_id", "student_answers", ["question_id"])


def downgrade() -> None:
    op.drop_index("ix_student_answers_question_id", table_name="student_answers")
    op.drop_table("student_answers")
    op.drop_index("ix_questions_document_id", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_documents_owner_id", table_name="documents")
    op.drop_table("documents")
