# mathmentor/services/hint_service.py
import logging
from typing import Any, Dict, List, Optional, Sequence

from mathmentor.services.ai_gateway import AIGateway, image_part, text_part
from mathmentor.services.classify import DocumentKind, DocumentRef, classify_document, references_visual
from mathmentor.services.errors import (
    AIServiceError,
    HintUnavailableError,
    MissingCredentialsError,
    QuotaExhaustedError,
    RateLimitedError,
)
from mathmentor.services.llm_json import parse_json_object

logger = logging.getLogger(__name__)

HINT_PROMPT = """You are a helpful math tutor providing hints to students.

Your task:
1. Provide a helpful hint that guides the student toward solving the problem
2. Do NOT give away the final answer
3. Focus on the approach, method, or first steps
4. Be encouraging and supportive
5. If previous hints were given, provide a NEW, more specific hint
6. If the question references a figure, chart, graph, or table, use that visual information to give relevant hints

Rules:
- Keep hints concise (1-3 sentences)
- Suggest what concept or formula to consider
- Point out what to look for or identify first
- Never reveal the complete solution"""

# passed through untouched; everything else becomes "hint unavailable"
_PASSTHROUGH = (MissingCredentialsError, RateLimitedError, QuotaExhaustedError)


def choose_multimodal(question_text: str, document: Optional[DocumentRef]) -> bool:
    return references_visual(question_text) and classify_document(document) is DocumentKind.IMAGE


def build_messages(
    question_text: str,
    previous_hints: Sequence[str] = (),
    document: Optional[DocumentRef] = None,
) -> List[Dict[str, Any]]:
    system = HINT_PROMPT
    if previous_hints:
        numbered = "\n".join(f"{i}. {h}" for i, h in enumerate(previous_hints, start=1))
        system += f"\n\nPrevious hints already given:\n{numbered}"

    ask = "Please provide a helpful hint (without giving the answer) to help me approach this problem."
    if choose_multimodal(question_text, document):
        text = (
            f"Question: {question_text}\n\n"
            "The question may reference a figure, chart, or table from the document. "
            "Please look at the attached document to understand the visual context when providing your hint.\n\n"
            f"{ask}"
        )
        user = {"role": "user", "content": [text_part(text), image_part(document.url)]}
    else:
        user = {"role": "user", "content": f"Question: {question_text}\n\n{ask}"}

    return [{"role": "system", "content": system}, user]


def _unwrap_hint(raw: str) -> str:
    data = parse_json_object(raw) if "{" in (raw or "") else None
    if data is not None and isinstance(data.get("hint"), str):
        return data["hint"].strip()
    return (raw or "").strip()


class HintService:
    """Produces one new hint per call. The hint history belongs to the caller."""

    def __init__(self, gateway: AIGateway):
        self.gateway = gateway

    async def get_hint(
        self,
        question_text: str,
        previous_hints: Sequence[str] = (),
        document: Optional[DocumentRef] = None,
        timeout: Optional[float] = None,
    ) -> str:
        previous = [h for h in (previous_hints or []) if h and h.strip()]
        logger.info("[HINT] previous=%d multimodal=%s", len(previous), choose_multimodal(question_text, document))

        try:
            raw = await self.gateway.chat(build_messages(question_text, previous, document), timeout=timeout)
        except _PASSTHROUGH:
            raise
        except AIServiceError as e:
            raise HintUnavailableError(str(e), status_code=e.status_code, body=e.body) from e

        hint = _unwrap_hint(raw)
        if not hint:
            raise HintUnavailableError("AI service returned an empty hint")

        if hint.lower() in {h.strip().lower() for h in previous}:
            logger.warning("[HINT] model repeated an earlier hint")
        return hint
