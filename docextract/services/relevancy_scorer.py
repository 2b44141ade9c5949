"""Model-judged answer relevancy, used as an optional evaluation signal."""

import logging

from docextract.services.gemini_client import CompletionClient
from docextract.utils.json_tools import extract_json_object

logger = logging.getLogger(__name__)

RELEVANCY_PROMPT = """You are grading how relevant an extraction output is to the request that produced it.

Request:
{query}

Output:
{output}

Judge whether the output directly answers the request with specific,
on-topic content. Ignore formatting. Score from 0 (irrelevant) to 1
(fully relevant).

Return ONLY a JSON object: {{"score": <number between 0 and 1>, "reason": "<one sentence>"}}"""


class AnswerRelevancyScorer:
    """Ask the model how well *output* answers *query*.

    Instances are callable, so one can be passed straight to
    ``evaluate_extraction(..., relevancy=scorer)``.
    """

    def __init__(self, completer: CompletionClient, temperature: float = 0.0, max_output_tokens: int = 200):
        self.completer = completer
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def measure(self, query: str, output: str) -> float:
        """Return a relevancy score in [0, 1].

        Raises:
            TransportError: If the model call fails.
            ValueError: If the reply holds no usable score.
        """
        reply = self.completer.complete(
            RELEVANCY_PROMPT.format(query=query, output=output),
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )
        verdict = extract_json_object(reply)

        try:
            score = float(verdict["score"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Relevancy verdict has no numeric score: {verdict}") from e

        if not 0.0 <= score <= 1.0:
            raise ValueError(f"Relevancy score out of range: {score}")

        logger.debug("Relevancy %.2f: %s", score, verdict.get("reason", ""))
        return score

    __call__ = measure
