# mathmentor/services/errors.py
"""
Failure kinds raised by the AI-backed services.

Parsing problems never show up here: they are recovered inside the services
(ungradable outcome / zero questions). What does show up is the upstream
service refusing or failing a request, plus missing configuration.
"""
from typing import Optional


class AIServiceError(Exception):
    """Any non-success reply from the AI gateway that has no dedicated kind."""

    code = "AI_502_1"
    reason = "AI service request failed"
    http_status = 502

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message or self.reason)


# Missing API key; fatal, never retried
class MissingCredentialsError(AIServiceError):
    code = "CONFIG_500_1"
    reason = "AI_API_KEY is not configured"
    http_status = 500


# HTTP 429 from the gateway; caller may retry later
class RateLimitedError(AIServiceError):
    code = "AI_429_1"
    reason = "Rate limit exceeded. Please try again later."
    http_status = 429


# HTTP 402 from the gateway; retrying will not help until credits are added
class QuotaExhaustedError(AIServiceError):
    code = "AI_402_1"
    reason = "AI credits exhausted. Please add credits to continue."
    http_status = 402


# Timeout or network failure before any HTTP status came back
class AIServiceUnavailableError(AIServiceError):
    code = "AI_504_1"
    reason = "AI service did not respond in time"
    http_status = 504


class HintUnavailableError(AIServiceError):
    code = "HINT_503_1"
    reason = "No hint is available right now"
    http_status = 503
