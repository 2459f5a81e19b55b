"""Generation client: walk the candidate Gemini models until one writes a review.

The fallback chain is strictly sequential. A candidate that raises or answers
with blank text is recorded and skipped; the first non-empty answer wins and no
later candidate is called. `AllModelsFailed` carries every attempted model.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence

import httpx
from google import genai
from google.genai import types

from .config import Settings, get_settings
from .errors import AllModelsFailed, GenerationUnavailable, MissingCredential
from .models import GenerationRequest, GenerationResult, ModelAttempt, TokenUsage
from .prompt import build_prompt
from .transport import join_url, open_client

logger = logging.getLogger(__name__)

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)

QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”", "‘": "’"}
_BLANK_LINE_RUN = re.compile(r"\n\s*\n")


# --- Data containers -------------------------------------------------------

@dataclass
class BackendResponse:
    text: Optional[str]
    usage: TokenUsage = field(default_factory=TokenUsage)


class GenerationBackend(Protocol):
    async def generate(self, model_name: str, prompt: str) -> BackendResponse: ...


# --- Helpers --------------------------------------------------------------

def _require_api_key(settings: Settings) -> str:
    if not settings.gemini_api_key:
        raise MissingCredential("Gemini API key not configured")
    return settings.gemini_api_key


def _strip_outer_quotes(text: str) -> str:
    if len(text) >= 2 and QUOTE_PAIRS.get(text[0]) == text[-1]:
        return text[1:-1]
    return text


def _clean_once(text: str) -> str:
    cleaned = _strip_outer_quotes(text.strip())
    cleaned = _BLANK_LINE_RUN.sub("\n", cleaned)
    return cleaned.strip()


def sanitize_review_text(text: str) -> str:
    """
    Trim, drop a symmetric pair of outer quotes, collapse blank-line runs, trim.

    The cleanup repeats until the text stops changing, so cleaning a cleaned
    review is a no-op.
    """
    cleaned = text
    while True:
        step = _clean_once(cleaned)
        if step == cleaned:
            return step
        cleaned = step


def safety_settings() -> List[types.SafetySetting]:
    """Block medium-and-above harassment, hate, sexual and dangerous content."""
    return [
        types.SafetySetting(
            category=category,
            threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        )
        for category in SAFETY_CATEGORIES
    ]


def generation_config(settings: Settings) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        temperature=settings.temperature,
        top_p=settings.top_p,
        top_k=settings.top_k,
        max_output_tokens=settings.max_output_tokens,
        thinking_config=types.ThinkingConfig(thinking_budget=settings.thinking_budget),
        safety_settings=safety_settings(),
    )


def _response_text(response: Any) -> Optional[str]:
    # None when the candidate was blocked or carried no text parts.
    text = response.text
    return text if isinstance(text, str) else None


def _usage(response: Any) -> TokenUsage:
    meta = getattr(response, "usage_metadata", None)
    return TokenUsage(
        total=getattr(meta, "total_token_count", None) or 0,
        prompt=getattr(meta, "prompt_token_count", None) or 0,
        completion=getattr(meta, "candidates_token_count", None) or 0,
    )


class GeminiBackend:
    """Calls one Gemini model with the fixed generation and safety configuration."""

    def __init__(
        self,
        api_key: str,
        settings: Optional[Settings] = None,
        *,
        client: Optional[genai.Client] = None,
    ):
        self._client = client or genai.Client(api_key=api_key)
        self._config = generation_config(settings or get_settings())

    async def generate(self, model_name: str, prompt: str) -> BackendResponse:
        response = await self._client.aio.models.generate_content(
            model=model_name,
            contents=prompt,
            config=self._config,
        )
        return BackendResponse(text=_response_text(response), usage=_usage(response))


# --- Fallback chain ---------------------------------------------------------

async def generate_review(
    request: GenerationRequest,
    *,
    backend: GenerationBackend,
    models: Sequence[str],
) -> GenerationResult:
    """Try each candidate model once, in order, and return the first usable review."""
    prompt = build_prompt(request)
    logger.info("Generating review with prompt: %s...", prompt[:200])

    attempts: List[ModelAttempt] = []
    for model_name in models:
        logger.info("Trying %s...", model_name)
        try:
            response = await backend.generate(model_name, prompt)
        except Exception as exc:
            logger.warning("%s failed: %s", model_name, exc)
            attempts.append(ModelAttempt(model_name, "error", str(exc)))
            continue

        cleaned = sanitize_review_text(response.text or "")
        if not cleaned:
            logger.warning("%s returned empty response", model_name)
            attempts.append(ModelAttempt(model_name, "empty"))
            continue

        attempts.append(ModelAttempt(model_name, "success"))
        usage = response.usage
        logger.info(
            "%s succeeded; token usage total=%d prompt=%d response=%d",
            model_name,
            usage.total,
            usage.prompt,
            usage.completion,
        )
        return GenerationResult(
            generated_text=cleaned, model_used=model_name, token_usage=usage
        )

    logger.error("All Gemini models failed: %s", ", ".join(a.model_name for a in attempts))
    raise AllModelsFailed([attempt.model_name for attempt in attempts], attempts)


# --- Generators used by the trigger ------------------------------------------

class DirectGenerator:
    """Runs the fallback chain in-process against Gemini."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        backend: Optional[GenerationBackend] = None,
    ):
        self._settings = settings or get_settings()
        self._backend = backend

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        backend = self._backend or GeminiBackend(
            _require_api_key(self._settings), self._settings
        )
        return await generate_review(
            request, backend=backend, models=self._settings.candidate_models
        )


class GenerationServiceClient:
    """Asks the service's `/api/ai-generate-review` endpoint for a review."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
    ):
        self._base_url = base_url
        self._client = client
        self._timeout = timeout

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        url = join_url(self._base_url, "/api/ai-generate-review")
        payload = request.model_dump(by_alias=True, exclude_none=True, mode="json")
        async with open_client(self._client, self._timeout) as client:
            try:
                response = await client.post(url, json=payload)
            except httpx.HTTPError as exc:
                raise GenerationUnavailable(f"Failed to generate review: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationUnavailable(
                f"Failed to generate review: HTTP {response.status_code}"
            ) from exc
        if not isinstance(data, dict):
            raise GenerationUnavailable("Failed to generate review: unexpected response")

        if not response.is_success or not data.get("success"):
            models_attempted = data.get("modelsAttempted")
            if models_attempted:
                raise AllModelsFailed(models_attempted)
            reason = data.get("error") or f"HTTP {response.status_code}"
            raise GenerationUnavailable(f"Failed to generate review: {reason}")

        text = data.get("generatedReview")
        if not isinstance(text, str) or not text.strip():
            raise GenerationUnavailable("Failed to generate review: empty review")

        metadata = data.get("metadata") or {}
        return GenerationResult(
            generated_text=text,
            model_used=str(metadata.get("modelUsed") or "unknown"),
            token_usage=TokenUsage(
                total=int(metadata.get("tokensUsed") or 0),
                prompt=int(metadata.get("promptTokens") or 0),
                completion=int(metadata.get("responseTokens") or 0),
            ),
        )
