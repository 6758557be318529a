"""
Question answering over extracted document text using the Gemini API.

Builds a single prompt from (possibly clipped) document text and the user's
question, calls the generateContent endpoint with a timeout and one retry on
transport failures, and maps every failure to a typed error.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from ..config import get_settings
from ..models import AnswerResult
from .retry import retry_async

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[...document truncated...]"
NO_ANSWER_PLACEHOLDER = "No answer"
MOCK_ANSWER = "MOCK ANSWER: set GEMINI_API_KEY to get answers from the model."

PROMPT_TEMPLATE = (
    "Answer the question based on the following document:\n\n"
    "{document}\n\n"
    "Question: {question}"
)

TRANSPORT_ATTEMPTS = 2


# =============================================================================
# Exceptions
# =============================================================================


class AnswerServiceError(Exception):
    """Raised when the question-answering call fails."""

    pass


class UpstreamUnreachableError(AnswerServiceError):
    """Every attempt failed at the transport level (timeout, reset, DNS)."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Answer service unreachable after {attempts} attempt(s). Please retry later."
        )


class UpstreamMalformedError(AnswerServiceError):
    """The provider answered with a body that is not valid JSON."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"Answer service returned an unparseable response (HTTP {status_code})"
        )


class UpstreamError(AnswerServiceError):
    """The provider answered with a well-formed error payload."""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Answer service returned HTTP {status_code}")


# =============================================================================
# Prompt construction
# =============================================================================


def clip_document_text(text: str, max_chars: int) -> tuple[str, bool]:
    """
    Clip document text to at most `max_chars` characters.

    Returns:
        The text to embed (with TRUNCATION_MARKER appended when clipped)
        and whether clipping happened.
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_MARKER, True


def build_prompt(document_text: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(document=document_text, question=question)


def first_candidate_text(data: Any) -> str | None:
    """Pull candidates[0].content.parts[0].text out of a response body."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


# =============================================================================
# Service
# =============================================================================


class AnswerService:
    """
    Client for the remote generation endpoint.

    Runs in mock mode when no API key is configured, returning a canned
    answer without touching the network.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_delay: float | None = None,
        max_document_chars: int | None = None,
        use_mock: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the answer service.

        Args:
            api_key: Gemini API key. If None, reads from config/environment.
            model: Model name, e.g. "gemini-2.0-flash".
            base_url: API root up to and including the version segment.
            timeout: Seconds allowed per attempt.
            retry_delay: Seconds to wait before the single retry.
            max_document_chars: Document text beyond this is clipped.
            use_mock: If True, return a canned answer instead of calling out.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            sleep: Awaitable used for the retry backoff.
        """
        settings = get_settings()
        if api_key is None:
            api_key = settings.gemini_api_key

        self.api_key = api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.answer_timeout_seconds
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.answer_retry_delay_seconds
        )
        self.max_document_chars = (
            max_document_chars
            if max_document_chars is not None
            else settings.max_document_chars
        )
        self.use_mock = use_mock or not self.api_key
        self._transport = transport
        self._sleep = sleep

        if self.use_mock:
            logger.warning(
                "Answer service running in MOCK MODE. Set GEMINI_API_KEY in .env for real answers."
            )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def answer(self, document_text: str, question: str) -> AnswerResult:
        """
        Answer a question from document text.

        Args:
            document_text: Extracted text of the document.
            question: The user's question, embedded verbatim.

        Returns:
            AnswerResult with the model's answer, or NO_ANSWER_PLACEHOLDER
            when a successful response lacks the expected structure.

        Raises:
            UpstreamUnreachableError: Both attempts failed at transport level.
            UpstreamMalformedError: The response body is not JSON.
            UpstreamError: The provider returned an error status.
        """
        clipped, truncated = clip_document_text(document_text, self.max_document_chars)
        if truncated:
            logger.info(
                "Document text clipped from %d to %d characters",
                len(document_text),
                self.max_document_chars,
            )
        prompt = build_prompt(clipped, question)

        if self.use_mock:
            logger.info("Answering question (MOCK MODE)")
            return AnswerResult(answer=MOCK_ANSWER, truncated=truncated)

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        response = await self._post(payload)

        try:
            data = response.json()
        except ValueError:
            logger.error(
                "Unparseable response from answer service (HTTP %d)",
                response.status_code,
            )
            raise UpstreamMalformedError(response.status_code, response.text[:500])

        if not response.is_success:
            logger.error("Answer service returned HTTP %d", response.status_code)
            raise UpstreamError(response.status_code, data)

        answer = first_candidate_text(data)
        if answer is None:
            logger.warning("Answer service response had no candidate text")
            answer = NO_ANSWER_PLACEHOLDER

        return AnswerResult(answer=answer, truncated=truncated)

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        """POST the payload, retrying once after a transport failure."""
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as client:

            async def call() -> httpx.Response:
                # httpx timeouts apply per read, so a dribbling server needs
                # an overall deadline on the attempt.
                try:
                    return await asyncio.wait_for(
                        client.post(
                            self.endpoint,
                            params={"key": self.api_key},
                            json=payload,
                        ),
                        self.timeout,
                    )
                except asyncio.TimeoutError as e:
                    raise httpx.ReadTimeout(
                        f"Attempt exceeded {self.timeout:.1f}s deadline"
                    ) from e

            try:
                return await retry_async(
                    call,
                    attempts=TRANSPORT_ATTEMPTS,
                    delay=self.retry_delay,
                    retry_on=(httpx.TransportError,),
                    sleep=self._sleep,
                )
            except httpx.TransportError as e:
                # The request URL carries the API key; log the error type only.
                logger.error(
                    "Answer service unreachable after %d attempts: %s",
                    TRANSPORT_ATTEMPTS,
                    type(e).__name__,
                )
                raise UpstreamUnreachableError(TRANSPORT_ATTEMPTS) from e


# Singleton instance for convenience
_answer_service: AnswerService | None = None


def get_answer_service() -> AnswerService:
    """Get or create the answer service singleton."""
    global _answer_service
    if _answer_service is None:
        _answer_service = AnswerService()
    return _answer_service
