# mathmentor/services/evaluation_service.py
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from mathmentor.models.answer import GradeOutcome
from mathmentor.services.ai_gateway import AIGateway, image_part, text_part
from mathmentor.services.classify import DocumentKind, DocumentRef, classify_document, references_visual
from mathmentor.services.llm_json import parse_json_object

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = "Unable to evaluate answer."


class GradingBranch(str, enum.Enum):
    TEXT_ONLY = "text_only"
    MULTIMODAL = "multimodal"
    LENIENT = "lenient"


GRADING_PROMPT = """You are an expert math teacher evaluating student answers.

Your task:
1. Determine if the student's answer is CORRECT or INCORRECT
2. Provide brief, encouraging feedback WITHOUT revealing the full solution

Rules:
- Be encouraging but honest
- If incorrect, give a hint about where they went wrong
- Do NOT give away the answer
- Keep feedback to 1-2 sentences max
- If the question references a figure, chart, graph, or table and an image is attached, use that visual information to evaluate the answer

Respond in this exact JSON format:
{
  "isCorrect": true or false,
  "feedback": "Your brief feedback here"
}"""

LENIENT_PROMPT = """You are an expert math teacher reviewing a student's answer.

The question depends on a figure, chart, graph, or table that you cannot see,
so you cannot decide whether the final answer is right.

Rules:
- Do NOT say whether the answer is correct or incorrect
- Comment on the method or approach the student used
- Do NOT give away the answer
- Keep feedback to 1-2 sentences max

Respond in this exact JSON format:
{
  "cannotGrade": true,
  "feedback": "Your brief comment on the approach here"
}"""


@dataclass(frozen=True)
class EvaluationResult:
    outcome: GradeOutcome
    feedback: str
    branch: Optional[GradingBranch] = None

    @property
    def cannot_grade(self) -> bool:
        return self.outcome is GradeOutcome.UNGRADABLE

    @property
    def is_correct(self) -> Optional[bool]:
        if self.cannot_grade:
            return None
        return self.outcome is GradeOutcome.CORRECT

    def as_tuple(self) -> Tuple[Optional[bool], str, bool]:
        return self.is_correct, self.feedback, self.cannot_grade


def choose_branch(question_text: str, document: Optional[DocumentRef]) -> GradingBranch:
    if not references_visual(question_text):
        return GradingBranch.TEXT_ONLY
    kind = classify_document(document)
    if kind is DocumentKind.IMAGE:
        return GradingBranch.MULTIMODAL
    if kind is DocumentKind.PAGINATED:
        return GradingBranch.LENIENT
    return GradingBranch.TEXT_ONLY


def build_messages(
    question_text: str,
    answer_text: str,
    branch: GradingBranch,
    document: Optional[DocumentRef] = None,
) -> List[Dict[str, Any]]:
    qa = f"Question: {question_text}\n\nStudent's Answer: {answer_text}"

    if branch is GradingBranch.MULTIMODAL:
        text = (
            f"{qa}\n\n"
            "The question may reference a figure, chart, or table from the document. "
            "Please look at the attached document to understand the visual context when evaluating the answer.\n\n"
            "Evaluate this answer and respond with JSON only."
        )
        user = {"role": "user", "content": [text_part(text), image_part(document.url)]}
        system = GRADING_PROMPT
    elif branch is GradingBranch.LENIENT:
        text = (
            f"{qa}\n\n"
            "The figure this question refers to is not available to you. "
            "Comment on the approach and respond with JSON only."
        )
        user = {"role": "user", "content": text}
        system = LENIENT_PROMPT
    else:
        user = {"role": "user", "content": f"{qa}\n\nEvaluate this answer and respond with JSON only."}
        system = GRADING_PROMPT

    return [{"role": "system", "content": system}, user]


def parse_evaluation(raw: str) -> EvaluationResult:
    """Model reply → tri-state result; anything unreadable becomes ungradable."""
    data = parse_json_object(raw)
    if data is None:
        logger.warning("[EVAL] unparseable reply, falling back to ungradable: %r", (raw or "")[:200])
        return EvaluationResult(GradeOutcome.UNGRADABLE, FALLBACK_FEEDBACK)

    feedback = data.get("feedback")
    feedback = feedback.strip() if isinstance(feedback, str) else ""

    if data.get("cannotGrade") is True:
        return EvaluationResult(GradeOutcome.UNGRADABLE, feedback or FALLBACK_FEEDBACK)

    verdict = data.get("isCorrect")
    if not isinstance(verdict, bool):
        logger.warning("[EVAL] reply has no boolean isCorrect: %r", data)
        return EvaluationResult(GradeOutcome.UNGRADABLE, FALLBACK_FEEDBACK)

    return EvaluationResult(GradeOutcome.CORRECT if verdict else GradeOutcome.INCORRECT, feedback)


class EvaluationService:
    """
    Grades one question/answer pair against the AI gateway.

    The request shape depends on the question and its source document:

    - no visual reference            → text-only grading
    - visual reference + image       → multimodal grading (image attached)
    - visual reference + pdf & co.   → lenient grading, always ungradable

    `store` is anything with `save_grade(answer_id, result)`; when given
    together with an answer id the result is written back before returning.
    """

    def __init__(self, gateway: AIGateway, store=None):
        self.gateway = gateway
        self.store = store

    async def evaluate(
        self,
        question_text: str,
        answer_text: str,
        document: Optional[DocumentRef] = None,
        answer_id=None,
        timeout: Optional[float] = None,
    ) -> EvaluationResult:
        if not (question_text or "").strip():
            raise ValueError("question text must not be empty")
        if not (answer_text or "").strip():
            raise ValueError("answer text must not be empty")

        branch = choose_branch(question_text, document)
        logger.info("[EVAL] answer=%s branch=%s", answer_id, branch.value)

        raw = await self.gateway.chat(build_messages(question_text, answer_text, branch, document), timeout=timeout)
        parsed = parse_evaluation(raw)

        if branch is GradingBranch.LENIENT and not parsed.cannot_grade:
            # the model was told it cannot see the figure; a verdict here is a guess
            logger.info("[EVAL] answer=%s model returned a verdict on lenient branch, keeping it ungradable", answer_id)
            parsed = EvaluationResult(GradeOutcome.UNGRADABLE, parsed.feedback or FALLBACK_FEEDBACK)

        result = EvaluationResult(parsed.outcome, parsed.feedback, branch)

        if self.store is not None and answer_id is not None:
            self.store.save_grade(answer_id, result)

        return result
