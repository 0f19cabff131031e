import pytest

from mathmentor.models.answer import GradeOutcome
from mathmentor.services.classify import DocumentRef
from mathmentor.services.errors import AIServiceError, QuotaExhaustedError, RateLimitedError
from mathmentor.services.evaluation_service import (
    FALLBACK_FEEDBACK,
    EvaluationService,
    GradingBranch,
    build_messages,
    choose_branch,
    parse_evaluation,
)

GRAPH_QUESTION = "Using the graph below, estimate the value of y when x=3 [figure]"
IMAGE_DOC = DocumentRef(url="https://cdn.test/sheet.png", media_type="image/png")
PDF_DOC = DocumentRef(url="https://cdn.test/paper.pdf", media_type="application/pdf")


# ---- branch selection

@pytest.mark.parametrize("doc", [None, IMAGE_DOC, PDF_DOC])
def test_plain_question_is_text_only_for_any_document(doc):
    assert choose_branch("Solve 2x + 3 = 7", doc) is GradingBranch.TEXT_ONLY


def test_visual_question_with_image_is_multimodal():
    assert choose_branch(GRAPH_QUESTION, IMAGE_DOC) is GradingBranch.MULTIMODAL


def test_visual_question_with_pdf_is_lenient():
    assert choose_branch(GRAPH_QUESTION, PDF_DOC) is GradingBranch.LENIENT


def test_visual_question_without_document_is_text_only():
    assert choose_branch(GRAPH_QUESTION, None) is GradingBranch.TEXT_ONLY


def test_multimodal_messages_attach_the_image():
    messages = build_messages(GRAPH_QUESTION, "y = 7", GradingBranch.MULTIMODAL, IMAGE_DOC)
    user = messages[1]["content"]
    assert isinstance(user, list)
    assert user[1] == {"type": "image_url", "image_url": {"url": IMAGE_DOC.url}}
    assert "Student's Answer: y = 7" in user[0]["text"]
    assert '"isCorrect"' in messages[0]["content"]


def test_lenient_messages_are_text_only_and_ask_for_cannot_grade():
    messages = build_messages(GRAPH_QUESTION, "y = 7", GradingBranch.LENIENT, PDF_DOC)
    assert isinstance(messages[1]["content"], str)
    assert '"cannotGrade": true' in messages[0]["content"]


# ---- parsing

@pytest.mark.parametrize("raw", [
    '{"isCorrect": false, "feedback": "Check the sign."}',
    '```json\n{"isCorrect": false, "feedback": "Check the sign."}\n```',
    '```\n{"isCorrect": false, "feedback": "Check the sign."}\n```',
    '  ```JSON{"isCorrect": false, "feedback": "Check the sign."}```  ',
])
def test_fenced_and_plain_replies_parse_the_same(raw):
    result = parse_evaluation(raw)
    assert result.outcome is GradeOutcome.INCORRECT
    assert result.is_correct is False
    assert result.feedback == "Check the sign."
    assert result.cannot_grade is False


def test_correct_reply():
    result = parse_evaluation('{"isCorrect": true, "feedback": "Well done!"}')
    assert result.as_tuple() == (True, "Well done!", False)


def test_cannot_grade_reply_is_ungradable_not_false():
    result = parse_evaluation('{"cannotGrade": true, "feedback": "Method looks fine."}')
    assert result.outcome is GradeOutcome.UNGRADABLE
    assert result.is_correct is None
    assert result.as_tuple() == (None, "Method looks fine.", True)


@pytest.mark.parametrize("raw", [
    "I think the student is right.",
    "{not json}",
    '{"feedback": "no verdict"}',
    '{"isCorrect": "yes", "feedback": "string verdict"}',
    "",
])
def test_malformed_replies_fall_back_to_ungradable(raw):
    result = parse_evaluation(raw)
    assert result.outcome is GradeOutcome.UNGRADABLE
    assert result.feedback == FALLBACK_FEEDBACK


# ---- orchestration

@pytest.mark.asyncio
async def test_scenario_image_document_graded_incorrect(gateway, fake_store):
    gateway.queue('{"isCorrect": false, "feedback": "Check your reading of the y-axis."}')
    service = EvaluationService(gateway, fake_store)

    result = await service.evaluate(GRAPH_QUESTION, "y = 7", IMAGE_DOC, answer_id="a-1")

    sent = gateway.last_messages[1]["content"]
    assert any(p.get("type") == "image_url" for p in sent)
    assert result.branch is GradingBranch.MULTIMODAL
    assert result.as_tuple() == (False, "Check your reading of the y-axis.", False)
    assert fake_store.grades["a-1"].is_correct is False
    assert fake_store.grades["a-1"].feedback == "Check your reading of the y-axis."


@pytest.mark.asyncio
async def test_scenario_pdf_document_is_stored_ungradable(gateway, fake_store):
    feedback = "Your method looks reasonable; verify against the original figure."
    gateway.queue('{"cannotGrade": true, "feedback": "%s"}' % feedback)
    service = EvaluationService(gateway, fake_store)

    result = await service.evaluate(GRAPH_QUESTION, "y = 7", PDF_DOC, answer_id="a-2")

    assert isinstance(gateway.last_messages[1]["content"], str)
    assert result.outcome is GradeOutcome.UNGRADABLE
    stored = fake_store.grades["a-2"]
    assert stored.is_correct is None
    assert stored.cannot_grade is True
    assert stored.feedback == feedback


@pytest.mark.asyncio
async def test_lenient_branch_never_stores_a_verdict(gateway, fake_store):
    gateway.queue('{"isCorrect": true, "feedback": "Looks right."}')
    result = await EvaluationService(gateway, fake_store).evaluate(GRAPH_QUESTION, "y = 7", PDF_DOC, answer_id="a-3")
    assert result.outcome is GradeOutcome.UNGRADABLE
    assert result.feedback == "Looks right."


@pytest.mark.asyncio
async def test_malformed_reply_is_persisted_as_ungradable(gateway, fake_store):
    gateway.queue("Sorry, I can't help with that.")
    result = await EvaluationService(gateway, fake_store).evaluate("Solve x + 1 = 2", "x = 1", answer_id="a-4")
    assert result.as_tuple() == (None, FALLBACK_FEEDBACK, True)
    assert fake_store.grades["a-4"].cannot_grade is True


@pytest.mark.asyncio
async def test_no_store_write_without_answer_id(gateway, fake_store):
    gateway.queue('{"isCorrect": true, "feedback": "ok"}')
    await EvaluationService(gateway, fake_store).evaluate("Solve x + 1 = 2", "x = 1")
    assert fake_store.grades == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    RateLimitedError(status_code=429),
    QuotaExhaustedError(status_code=402),
    AIServiceError("boom", status_code=500),
])
async def test_service_errors_propagate_and_nothing_is_stored(gateway, fake_store, error):
    gateway.queue(error)
    with pytest.raises(type(error)):
        await EvaluationService(gateway, fake_store).evaluate("Solve x + 1 = 2", "x = 1", answer_id="a-5")
    assert fake_store.grades == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("question, answer", [("", "x = 1"), ("Solve x + 1 = 2", "   ")])
async def test_empty_inputs_are_rejected_before_any_call(gateway, question, answer):
    with pytest.raises(ValueError):
        await EvaluationService(gateway).evaluate(question, answer)
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_caller_timeout_is_forwarded(gateway):
    gateway.queue('{"isCorrect": true, "feedback": "ok"}')
    await EvaluationService(gateway).evaluate("Solve x + 1 = 2", "x = 1", timeout=3.5)
    assert gateway.calls[0]["timeout"] == 3.5
