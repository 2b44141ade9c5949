"""Gemini API client and the completion interface used by the pipeline.

The classifier, extractor and relevancy scorer only need "prompt in, text
out", so they depend on the small ``CompletionClient`` protocol rather than
on the SDK. ``GeminiCompletionClient`` implements it with the google-genai
SDK (not google.generativeai) and retries transient failures.
"""

import logging
from typing import Optional, Protocol

from google import genai
from google.genai import types

from docextract.config import get_settings
from docextract.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a model call fails after all retries."""


class CompletionClient(Protocol):
    """Anything that can turn a prompt into a text reply."""

    def complete(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        ...


def get_gemini_client() -> genai.Client:
    """Initialize and return a Gemini API client.

    The client reads the GEMINI_API_KEY from the application settings.
    Settings validation ensures the API key is present at startup.

    Returns:
        genai.Client: Initialized Gemini client ready for API calls.

    Raises:
        ValueError: If GEMINI_API_KEY is not set in environment.
    """
    settings = get_settings()

    if not settings.gemini_api_key:
        raise ValueError(
            "GEMINI_API_KEY not set in environment. "
            "Please set this variable in your .env file or environment."
        )

    return genai.Client(api_key=settings.gemini_api_key)


class GeminiCompletionClient:
    """``CompletionClient`` backed by ``client.models.generate_content``.

    Example:
        >>> completer = GeminiCompletionClient()
        >>> completer.complete("Say hi", temperature=0.1, max_output_tokens=20)
    """

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        base_delay: float = 1.0,
    ):
        if model is None or max_retries is None:
            settings = get_settings()
            model = model or settings.model_name
            if max_retries is None:
                max_retries = settings.completion_max_retries

        self._client = client if client is not None else get_gemini_client()
        self.model = model
        self._generate_with_retry = retry_with_backoff(
            max_retries=max_retries, base_delay=base_delay
        )(self._generate)

    def _generate(self, prompt: str, temperature: float, max_output_tokens: int) -> str:
        response = self._client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
            ),
        )
        return response.text or ""

    def complete(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        """Send *prompt* to the model and return its text reply.

        An empty reply is returned as an empty string; interpreting it is the
        caller's job.

        Raises:
            TransportError: If the call still fails after retries.
        """
        try:
            return self._generate_with_retry(prompt, temperature, max_output_tokens)
        except Exception as e:
            logger.error("Gemini call to %s failed: %s", self.model, e)
            raise TransportError(f"Model call failed: {e}") from e
