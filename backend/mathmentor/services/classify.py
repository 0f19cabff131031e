# mathmentor/services/classify.py
"""Keyword and file-type heuristics that pick the request shape sent to the model."""
import enum
import posixpath
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlsplit

# the extractor prefixes figure-dependent questions with "[See figure in original document]"
SEE_FIGURE_MARKER = "[see figure"
VISUAL_KEYWORDS = ("figure", "chart", "graph", "diagram", "table", SEE_FIGURE_MARKER)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}


class DocumentKind(str, enum.Enum):
    NONE = "none"
    IMAGE = "image"
    PAGINATED = "paginated"


@dataclass(frozen=True)
class DocumentRef:
    url: str
    media_type: Optional[str] = None
    filename: Optional[str] = None


def references_visual(text: Optional[str], keywords: Iterable[str] = VISUAL_KEYWORDS) -> bool:
    """True when the question seems to lean on a figure, chart, graph, diagram or table."""
    if not text:
        return False
    lowered = text.lower()
    return any(k.lower() in lowered for k in keywords)


def _extension(value: Optional[str]) -> str:
    if not value:
        return ""
    path = urlsplit(value).path or value
    return posixpath.splitext(path)[1].lower()


def classify_document(ref: Optional[DocumentRef]) -> DocumentKind:
    if ref is None or not ref.url:
        return DocumentKind.NONE

    media = (ref.media_type or "").split(";")[0].strip().lower()
    if media:
        return DocumentKind.IMAGE if media.startswith("image/") else DocumentKind.PAGINATED

    ext = _extension(ref.url) or _extension(ref.filename)
    if ext in IMAGE_EXTENSIONS:
        return DocumentKind.IMAGE
    # pdf, tiff, docx, unknown: nothing the vision path can look at as one flat image
    return DocumentKind.PAGINATED
