"""
Gemini incident classifier.

Sends the tenant's message (with name and room as context) to Gemini with a
fixed JSON response schema and returns a validated IncidentAnalysis. Any
failure (no credential, API error, empty or malformed response) surfaces as
ClassificationError so the caller can abort the submission cleanly.
"""
import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import types as genai_types
from pydantic import ValidationError

import config
from incidents.errors import ClassificationError
from incidents.translations import LANG_NAMES
from incidents.types import IncidentAnalysis, IncidentCategory, Sentiment

logger = logging.getLogger(__name__)

RESPONSE_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "category": genai_types.Schema(
            type=genai_types.Type.STRING,
            enum=[c.value for c in IncidentCategory],
            description="Classify the incident into one of the allowed categories.",
        ),
        "urgency_level": genai_types.Schema(
            type=genai_types.Type.INTEGER,
            description="Urgency from 1 to 5. 5 means immediate action.",
        ),
        "sentiment": genai_types.Schema(
            type=genai_types.Type.STRING,
            enum=[s.value for s in Sentiment],
            description="Sentiment detected in the message.",
        ),
        "action_summary": genai_types.Schema(
            type=genai_types.Type.STRING,
            description="Short operational summary (5-7 words at most).",
        ),
        "suggested_reply": genai_types.Schema(
            type=genai_types.Type.STRING,
            description="Kind, empathetic draft reply addressed to the tenant.",
        ),
    },
    required=["category", "urgency_level", "sentiment", "action_summary", "suggested_reply"],
)


def build_system_instruction(
    coliving: str, rooms: int, summary_language: str, reply_language: str
) -> str:
    summary_lang = LANG_NAMES.get(summary_language, "Spanish")
    reply_lang = LANG_NAMES.get(reply_language, "Spanish")
    return (
        f'You are "IncidenBot", an expert incident manager for {coliving}, a coliving '
        f"with {rooms} rooms. Tenants may write vague, urgent or angry messages.\n\n"
        "Analyse the input text and produce the required fields as strict JSON.\n\n"

        "URGENCY CRITERIA:\n"
        "1: Can wait weeks.\n"
        "5: Requires immediate action (right now).\n\n"

        "CATEGORY CRITERIA:\n"
        "- Maintenance (broken things, plumbing, electricity).\n"
        "- Cleaning (dirt, rubbish, bed sheets).\n"
        "- Internet (slow wifi, no connection).\n"
        "- Administration (payments, general questions, noise).\n"
        "- Emergency (fire, serious flooding, physical safety).\n\n"

        f"LANGUAGE: write action_summary in {summary_lang}. "
        f"Write suggested_reply in {reply_lang} unless the tenant clearly writes "
        "in another language, in which case reply in theirs."
    )


def _is_rate_limit_error(e: Exception) -> bool:
    """Detect 429 / quota-exceeded errors from the Gemini API."""
    msg = str(e).lower()
    return (
        "429" in msg
        or "quota" in msg
        or "resource_exhausted" in msg
        or type(e).__name__ in ("ResourceExhausted", "TooManyRequests")
    )


class IncidentClassifier:
    """Thin wrapper over google-genai with the incident response schema."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[genai.Client] = None,
        use_vertex: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
    ):
        self._api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self._use_vertex = config.USE_VERTEX_AI if use_vertex is None else use_vertex
        self.model = model or config.GEMINI_MODEL
        self._client = client
        self._max_retries = max_retries or config.CLASSIFIER_MAX_RETRIES
        self._retry_base_delay = (
            config.CLASSIFIER_RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
        )

    @property
    def configured(self) -> bool:
        return self._client is not None or self._use_vertex or bool(self._api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if self._use_vertex:
                self._client = genai.Client()
            else:
                self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _generate_with_retry(self, client: genai.Client, **kwargs):
        """Call Gemini with exponential backoff on rate-limit errors."""
        for attempt in range(self._max_retries):
            try:
                return await asyncio.to_thread(client.models.generate_content, **kwargs)
            except Exception as e:
                if _is_rate_limit_error(e) and attempt < self._max_retries - 1:
                    delay = self._retry_base_delay * (2 ** attempt)
                    logger.warning(
                        "Rate limit hit (attempt %d/%d). Retrying in %.0fs...",
                        attempt + 1, self._max_retries, delay,
                    )
                    await asyncio.sleep(delay)
                else:
                    raise

    async def analyze(self, context_text: str, language: Optional[str] = None) -> IncidentAnalysis:
        """
        Classify one tenant message.

        Args:
            context_text: message prefixed with tenant name and room.
            language:     language of the suggested reply (defaults to DEFAULT_LANGUAGE).

        Raises:
            ClassificationError: on missing credential, API error or a response
                                 that does not fit the schema.
        """
        if not self.configured:
            raise ClassificationError(
                "API key is missing. Please check your environment configuration."
            )

        instruction = build_system_instruction(
            coliving=config.COLIVING_NAME,
            rooms=config.COLIVING_ROOMS,
            summary_language=config.SUMMARY_LANGUAGE,
            reply_language=language or config.DEFAULT_LANGUAGE,
        )
        try:
            response = await self._generate_with_retry(
                self._get_client(),
                model=self.model,
                contents=context_text,
                config=genai_types.GenerateContentConfig(
                    system_instruction=instruction,
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                    temperature=config.CLASSIFIER_TEMPERATURE,
                ),
            )
        except Exception as exc:
            logger.error("Gemini API error: %s: %s", type(exc).__name__, exc)
            raise ClassificationError(f"Classification request failed: {exc}") from exc

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise ClassificationError("No response received from Gemini.")

        try:
            return IncidentAnalysis.model_validate_json(text)
        except ValidationError as exc:
            logger.error("Malformed classification payload: %s | %s", exc, text[:500])
            raise ClassificationError("Gemini response does not match the incident schema.") from exc
