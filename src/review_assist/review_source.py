"""Review source adapter.

Turns Google Places (New) review payloads, in whichever shape they arrive, into
`ReviewRecord`s:
- upstream: `fetch_place_reviews` calls the Places API directly (used by the server)
- service-facing: `ReviewSourceClient` reads the `/api/google-reviews` envelope
- in-process: `DirectReviewSource` wraps the upstream call with configured credentials
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import MissingCredential, SourceParseError, SourceUnavailable
from .models import DEFAULT_LANGUAGE_CODE, ReviewRecord
from .schema import validate_place_payload
from .transport import join_url, open_client

logger = logging.getLogger(__name__)


RESTAURANT_KEYWORDS = (
    "delicious",
    "tasty",
    "fresh",
    "hot",
    "spicy",
    "good",
    "great",
    "excellent",
    "amazing",
    "wonderful",
    "perfect",
    "best",
    "love",
    "recommend",
    "favorite",
    "service",
    "staff",
    "friendly",
    "helpful",
    "fast",
    "quick",
    "clean",
    "atmosphere",
    "environment",
    "cozy",
    "nice",
    "beautiful",
)


# --- Normalization ----------------------------------------------------------

def _localized(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def review_text(raw: Mapping[str, Any]) -> str:
    """Translated text first, then the original text, then a plain string field."""
    text = _localized(raw, "text").get("text") or _localized(raw, "originalText").get(
        "text"
    )
    if text:
        return str(text)
    plain = raw.get("text")
    return plain if isinstance(plain, str) else ""


def _clamp_rating(value: Any) -> int:
    try:
        rating = int(round(float(value)))
    except (TypeError, ValueError):
        rating = 0
    return max(1, min(5, rating))


def normalize_place_review(
    raw: Mapping[str, Any],
    index: int = 0,
    fallback_language: str = DEFAULT_LANGUAGE_CODE,
) -> ReviewRecord:
    """Map one Places review (new or legacy field names) onto a ReviewRecord."""
    author = (
        _localized(raw, "authorAttribution").get("displayName")
        or raw.get("author_name")
        or "Anonymous"
    )
    language = (
        _localized(raw, "text").get("languageCode")
        or _localized(raw, "originalText").get("languageCode")
        or fallback_language
    )
    return ReviewRecord(
        review_id=f"review_{index}",
        author_name=str(author),
        rating=_clamp_rating(raw.get("rating")),
        text=review_text(raw),
        relative_time=str(
            raw.get("relativePublishTimeDescription")
            or raw.get("relative_time_description")
            or ""
        ),
        publish_time=str(raw.get("publishTime") or ""),
        language_code=str(language),
    )


def normalize_place_reviews(
    payload: Any, fallback_language: str = DEFAULT_LANGUAGE_CODE
) -> List[ReviewRecord]:
    """Validate a place details payload and normalize every review in it."""
    try:
        validate_place_payload(payload)
    except ValueError as exc:
        raise SourceParseError(str(exc)) from exc
    raw_reviews = payload.get("reviews") or []
    return [
        normalize_place_review(raw, idx, fallback_language)
        for idx, raw in enumerate(raw_reviews)
    ]


# --- Upstream: Google Places ---------------------------------------------------

async def fetch_place_reviews(
    place_id: str,
    *,
    api_key: Optional[str],
    client: httpx.AsyncClient,
    base_url: str = "https://places.googleapis.com/v1/places",
    fallback_language: str = DEFAULT_LANGUAGE_CODE,
) -> List[ReviewRecord]:
    """
    Fetch and normalize reviews for a place from the Places API.

    An empty body or a payload without reviews is a valid "no reviews" answer.
    """
    if not api_key:
        raise MissingCredential("Google Places API key not configured")

    url = join_url(base_url, place_id)
    logger.info("Fetching reviews for place ID: %s", place_id)
    try:
        response = await client.get(
            url,
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": api_key,
                "X-Goog-FieldMask": "reviews",
            },
        )
    except httpx.HTTPError as exc:
        raise SourceUnavailable(f"Google Places API request failed: {exc}") from exc

    body = response.text
    logger.debug("Google Places API response status: %s", response.status_code)
    if not response.is_success:
        logger.error("Google Places API error: %s", body)
        raise SourceUnavailable(
            f"Google Places API error: {response.status_code}",
            status_code=response.status_code,
            details=body,
        )

    if not body.strip():
        logger.warning("Empty response from Google Places API")
        return []

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise SourceParseError(f"Parse error: {exc}") from exc

    reviews = normalize_place_reviews(data, fallback_language)
    logger.info("Successfully fetched %d reviews", len(reviews))
    return reviews


# --- Service-facing adapters ---------------------------------------------------

def _envelope_error(data: Mapping[str, Any], default: str) -> str:
    message = data.get("error") or default
    details = data.get("details")
    return f"{message} - {details}" if details else str(message)


class ReviewSourceClient:
    """Reads reviews through the service's `/api/google-reviews` endpoint."""

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

    async def fetch(self, place_id: str) -> List[ReviewRecord]:
        url = join_url(self._base_url, "/api/google-reviews")
        async with open_client(self._client, self._timeout) as client:
            try:
                response = await client.get(url, params={"placeId": place_id})
            except httpx.HTTPError as exc:
                raise SourceUnavailable(f"Review source unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            if not response.is_success:
                raise SourceUnavailable(
                    f"HTTP error! status: {response.status_code}",
                    status_code=response.status_code,
                ) from exc
            raise SourceParseError("Review source returned a non-JSON body") from exc

        if not isinstance(data, dict):
            raise SourceParseError("Review source returned an unexpected envelope")

        if not response.is_success:
            raise SourceUnavailable(
                _envelope_error(data, f"HTTP error! status: {response.status_code}"),
                status_code=response.status_code,
                details=data.get("details"),
            )
        if not data.get("success"):
            raise SourceUnavailable(
                f"API Error: {_envelope_error(data, 'Unknown error')}",
                status_code=response.status_code,
                details=data.get("details"),
            )

        raw_reviews = data.get("reviews")
        if raw_reviews is None:
            return []
        if not isinstance(raw_reviews, list):
            raise SourceParseError("Review source envelope has a non-list `reviews`")
        try:
            return [ReviewRecord.model_validate(item) for item in raw_reviews]
        except ValidationError as exc:
            raise SourceParseError(f"Malformed review record: {exc}") from exc


class DirectReviewSource:
    """Fetches reviews in-process with the configured Places credentials."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client

    async def fetch(self, place_id: str) -> List[ReviewRecord]:
        settings = self._settings
        async with open_client(self._client, settings.http_timeout_seconds) as client:
            return await fetch_place_reviews(
                place_id,
                api_key=settings.google_places_api_key,
                client=client,
                base_url=settings.places_api_url,
                fallback_language=settings.fallback_language_code,
            )


# --- Display helpers -----------------------------------------------------------

def format_reviews_for_display(reviews: Iterable[ReviewRecord]) -> List[str]:
    return [
        f"{review.author_name} ({review.rating}★): {review.text or 'No text'}"
        for review in reviews
    ]


def positive_reviews(reviews: Iterable[ReviewRecord]) -> List[ReviewRecord]:
    """Reviews rated 4 stars or better."""
    return [review for review in reviews if review.rating >= 4]


def extract_keywords(reviews: Iterable[ReviewRecord]) -> List[str]:
    """Restaurant vocabulary that shows up in the reviews, in vocabulary order."""
    words = " ".join(review.text for review in reviews).lower().split()
    return [
        keyword
        for keyword in RESTAURANT_KEYWORDS
        if any(keyword in word for word in words)
    ]
