import base64

import fitz
import pytest
from sqlalchemy.exc import DataError

from mathmentor.models.document import DocumentStatus
from mathmentor.services.errors import RateLimitedError
from mathmentor.services.extraction_service import (
    ExtractionService,
    build_messages,
    document_images,
    map_extraction,
    parse_extraction,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


def _pdf_bytes(pages: int) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"Question {i + 1}: solve x + {i} = 10")
    data = doc.tobytes()
    doc.close()
    return data


def test_order_follows_input_not_labels():
    drafts = map_extraction([
        {"number": "2", "text": "Second printed"},
        {"number": "1b", "text": "Part b"},
        {"number": "1a", "text": "Part a"},
    ])
    assert [(d.number, d.sort_order) for d in drafts] == [("2", 0), ("1b", 1), ("1a", 2)]


def test_labels_are_opaque_strings():
    drafts = map_extraction([
        {"number": "3(ii)", "text": "Roman part"},
        {"number": 4, "text": "Numeric label from the model"},
        {"text": "No label at all"},
    ])
    assert [d.number for d in drafts] == ["3(ii)", "4", "3"]


def test_malformed_entries_are_skipped_and_positions_stay_contiguous():
    drafts = map_extraction([
        "just a string",
        {"number": "1", "text": "  Keep me  "},
        {"number": "2", "text": ""},
        {"number": "3", "text": "Keep me too"},
    ])
    assert [(d.number, d.text, d.sort_order) for d in drafts] == [("1", "Keep me", 0), ("3", "Keep me too", 1)]


@pytest.mark.parametrize("raw", ["", "no questions here", '{"number": "1", "text": "object not list"}', "[broken"])
def test_unparseable_extraction_is_empty(raw):
    assert parse_extraction(raw) == []


def test_fenced_array_parses():
    raw = '```json\n[{"number": "1", "text": "Solve x"}]\n```'
    assert parse_extraction(raw) == [{"number": "1", "text": "Solve x"}]


def test_image_is_sent_as_single_data_url():
    urls = document_images(PNG_BYTES, "image/png")
    assert urls == ["data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")]


def test_pdf_pages_are_rendered_up_to_the_limit():
    urls = document_images(_pdf_bytes(3), "application/pdf", max_pages=2)
    assert len(urls) == 2
    assert all(u.startswith("data:image/png;base64,") for u in urls)


def test_unreadable_pdf_is_a_value_error():
    with pytest.raises(ValueError):
        document_images(b"not a pdf at all", "application/pdf")


def test_messages_carry_ocr_prompt_and_images():
    messages = build_messages(PNG_BYTES, "image/png")
    assert "[See figure in original document]" in messages[0]["content"]
    parts = messages[1]["content"]
    assert parts[0]["type"] == "text"
    assert parts[1]["type"] == "image_url"


@pytest.mark.asyncio
async def test_extract_stores_questions_and_completes(gateway, fake_store):
    gateway.queue('[{"number": "1a", "text": "Expand (x+2)^2"}, {"number": "1b", "text": "Factorise x^2-4"}]')
    drafts = await ExtractionService(gateway, fake_store).extract("doc-1", PNG_BYTES, "image/png")

    assert [d.number for d in drafts] == ["1a", "1b"]
    assert fake_store.questions["doc-1"] == drafts
    assert fake_store.statuses["doc-1"] is DocumentStatus.COMPLETED


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["[]", "The page is blank."])
async def test_empty_or_malformed_extraction_still_completes(gateway, fake_store, reply):
    gateway.queue(reply)
    drafts = await ExtractionService(gateway, fake_store).extract("doc-2", PNG_BYTES, "image/png")

    assert drafts == []
    assert "doc-2" not in fake_store.questions
    assert fake_store.statuses["doc-2"] is DocumentStatus.COMPLETED


@pytest.mark.asyncio
async def test_service_error_marks_document_failed(gateway, fake_store):
    gateway.queue(RateLimitedError(status_code=429))
    with pytest.raises(RateLimitedError):
        await ExtractionService(gateway, fake_store).extract("doc-3", PNG_BYTES, "image/png")
    assert fake_store.statuses["doc-3"] is DocumentStatus.FAILED


@pytest.mark.asyncio
async def test_bad_pdf_marks_document_failed_without_calling_the_model(gateway, fake_store):
    with pytest.raises(ValueError):
        await ExtractionService(gateway, fake_store).extract("doc-4", b"garbage", "application/pdf")
    assert gateway.calls == []
    assert fake_store.statuses["doc-4"] is DocumentStatus.FAILED


@pytest.mark.asyncio
async def test_failed_question_insert_marks_document_failed(gateway, fake_store):
    def reject(document_id, drafts):
        raise DataError("INSERT INTO questions ...", {}, Exception("value too long for type character varying(32)"))

    fake_store.add_questions = reject
    gateway.queue('[{"number": "Question 12 (continued from page 3), part (iv)", "text": "Solve x^2 = 9"}]')

    with pytest.raises(DataError):
        await ExtractionService(gateway, fake_store).extract("doc-5", PNG_BYTES, "image/png")
    assert fake_store.statuses["doc-5"] is DocumentStatus.FAILED
