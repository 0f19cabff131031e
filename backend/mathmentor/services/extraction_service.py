# mathmentor/services/extraction_service.py
import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import fitz  # PyMuPDF

from mathmentor.models.document import DocumentStatus
from mathmentor.services.ai_gateway import AIGateway, image_part, text_part
from mathmentor.services.errors import AIServiceError
from mathmentor.services.llm_json import parse_json_array

logger = logging.getLogger(__name__)

PDF_RENDER_DPI = 150

OCR_PROMPT = """You are an expert OCR system specialized in extracting math questions from exam papers and worksheets.

Your task: Extract ALL math questions from the provided document image(s) with EXTREME precision.

Return a JSON array with this exact format:
[
  {"number": "1a", "text": "Full question text here"},
  {"number": "1b", "text": "Next sub-question..."},
  {"number": "2", "text": "Question 2..."}
]

CRITICAL RULES FOR ACCURACY:

1. QUESTION NUMBERING:
   - Use the EXACT numbering from the document (e.g., "1", "1a", "1b", "2i", "2ii", "3(i)", "3(ii)")
   - Each sub-question (a, b, c OR i, ii, iii OR (i), (ii), (iii)) MUST be a SEPARATE entry
   - DO NOT include the question number inside the question text

2. MATHEMATICAL NOTATION:
   - Powers: x^2, 10^5, y^(-3); fractions: 3/4; square roots: sqrt(x)
   - Preserve negative signs, exponents and inequality symbols EXACTLY

3. TABLES, CHARTS, FIGURES, AND DIAGRAMS:
   - If a question references a table, chart, graph, or diagram, include "[See figure in original document]" at the START of the question
   - Describe the key data from tables and the visible values of charts in the question text

4. TEXT ACCURACY:
   - Copy text EXACTLY as written - do not paraphrase
   - Include any context provided before the actual question
   - Do NOT skip questions with images/diagrams - describe what's needed instead

ONLY return valid JSON, no other text or markdown."""

OCR_REQUEST = (
    "Extract all math questions from this document. Each sub-question (a/b/c or i/ii/iii) must be separate. "
    "Be EXTREMELY careful with negative signs, exponents, and inequality symbols. Return ONLY a JSON array."
)


@dataclass(frozen=True)
class QuestionDraft:
    number: str
    text: str
    sort_order: int


def parse_extraction(raw: str) -> List[Any]:
    items = parse_json_array(raw)
    if items is None:
        logger.warning("[EXTRACT] reply is not a JSON array, treating as zero questions: %r", (raw or "")[:200])
        return []
    return items


def map_extraction(items: List[Any]) -> List[QuestionDraft]:
    """Keep the model's order; labels stay opaque strings."""
    drafts: List[QuestionDraft] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        label = item.get("number")
        label = str(label).strip() if label is not None else ""
        position = len(drafts)
        drafts.append(QuestionDraft(number=label or str(position + 1), text=text.strip(), sort_order=position))
    if len(drafts) != len(items or []):
        logger.info("[EXTRACT] dropped %d malformed entries", len(items) - len(drafts))
    return drafts


def data_url(content: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(content).decode('ascii')}"


def document_images(content: bytes, media_type: str, max_pages: int = 5) -> List[str]:
    """Data urls to attach: the image itself, or one PNG per PDF page."""
    if media_type != "application/pdf":
        return [data_url(content, media_type)]

    urls = []
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (RuntimeError, ValueError) as e:  # fitz.FileDataError subclasses RuntimeError
        raise ValueError(f"Could not read PDF: {e}") from e
    with doc:
        for page_no, page in enumerate(doc, start=1):
            if page_no > max_pages:
                logger.info("[EXTRACT] pdf has %d pages, only the first %d are sent", doc.page_count, max_pages)
                break
            pix = page.get_pixmap(dpi=PDF_RENDER_DPI)
            urls.append(data_url(pix.tobytes("png"), "image/png"))
    return urls


def build_messages(content: bytes, media_type: str, max_pages: int = 5) -> List[Dict[str, Any]]:
    parts = [text_part(OCR_REQUEST)] + [image_part(u) for u in document_images(content, media_type, max_pages)]
    return [
        {"role": "system", "content": OCR_PROMPT},
        {"role": "user", "content": parts},
    ]


class ExtractionService:
    """
    Runs OCR extraction once per uploaded document.

    `store` needs `add_questions(document_id, drafts)` and
    `set_document_status(document_id, status)`.
    """

    def __init__(self, gateway: AIGateway, store=None, max_pages: int = 5):
        self.gateway = gateway
        self.store = store
        self.max_pages = max_pages

    async def extract(
        self,
        document_id,
        content: bytes,
        media_type: str,
        timeout: Optional[float] = None,
    ) -> List[QuestionDraft]:
        logger.info("[EXTRACT] document=%s type=%s size=%d", document_id, media_type, len(content))
        try:
            raw = await self.gateway.chat(build_messages(content, media_type, self.max_pages), timeout=timeout)
        except (AIServiceError, ValueError):
            if self.store is not None:
                self.store.set_document_status(document_id, DocumentStatus.FAILED)
            raise

        drafts = map_extraction(parse_extraction(raw))
        logger.info("[EXTRACT] document=%s extracted %d questions", document_id, len(drafts))

        if self.store is not None:
            try:
                if drafts:
                    self.store.add_questions(document_id, drafts)
                self.store.set_document_status(document_id, DocumentStatus.COMPLETED)
            except Exception:
                logger.exception("[EXTRACT] document=%s could not be saved, marking failed", document_id)
                self.store.set_document_status(document_id, DocumentStatus.FAILED)
                raise
        return drafts
