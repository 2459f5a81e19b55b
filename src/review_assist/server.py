"""FastAPI service: review-source proxy, review generation, and diagnostics."""

from __future__ import annotations

import dataclasses
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from fastapi import FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .business import BusinessInfo, deep_links
from .config import Settings, get_settings
from .errors import AllModelsFailed, SourceParseError, SourceUnavailable
from .generation import GeminiBackend, GenerationBackend, generate_review
from .models import GenerationRequest
from .review_source import fetch_place_reviews
from .transport import open_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    app.state.http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    # Warn (don't crash) when credentials are missing.
    if not settings.google_places_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not set; review fetches will fail.")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; review generation will fail.")
    try:
        yield
    finally:
        await app.state.http.aclose()


app = FastAPI(title="Review Assist", lifespan=lifespan)


def _add_cors(app: FastAPI) -> None:
    """
    The landing page calls the review and generation endpoints from its own
    origin; allow every origin unless CORS_ALLOW_ORIGINS narrows the list.
    """
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_add_cors(app)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(
    status_code: int,
    error: str,
    *,
    details: Optional[str] = None,
    **extra: Any,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def _build_backend(settings: Settings) -> GenerationBackend:
    """Separated so tests can swap in a fake backend."""
    return GeminiBackend(settings.gemini_api_key or "", settings)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/status")
def api_status() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "success": True,
        "message": "Review Assist API is working",
        "hasApiKey": bool(settings.google_places_api_key),
        "hasGeminiKey": bool(settings.gemini_api_key),
        "timestamp": _now(),
    }


@app.get("/api/business")
def business() -> Dict[str, Any]:
    info = BusinessInfo.from_settings(get_settings())
    return {"business": dataclasses.asdict(info), "links": deep_links(info)}


@app.get("/api/google-reviews")
async def google_reviews(
    request: Request, place_id: Optional[str] = Query(None, alias="placeId")
):
    if not place_id:
        return _failure(status.HTTP_400_BAD_REQUEST, "Place ID is required")

    settings = get_settings()
    if not settings.google_places_api_key:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Google Places API key not configured",
        )

    shared = getattr(request.app.state, "http", None)
    try:
        async with open_client(shared, settings.http_timeout_seconds) as client:
            reviews = await fetch_place_reviews(
                place_id,
                api_key=settings.google_places_api_key,
                client=client,
                base_url=settings.places_api_url,
                fallback_language=settings.fallback_language_code,
            )
    except SourceUnavailable as exc:
        return _failure(
            exc.status_code or status.HTTP_502_BAD_GATEWAY,
            str(exc),
            details=exc.details,
        )
    except SourceParseError as exc:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Invalid JSON response from Google Places API",
            details=str(exc),
        )
    except Exception as exc:
        logger.exception("Error fetching Google reviews")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            details=str(exc),
        )

    if not reviews:
        return {
            "success": True,
            "reviews": [],
            "message": "No reviews found for this place",
        }

    return {
        "success": True,
        "reviews": [review.model_dump(by_alias=True) for review in reviews],
        "totalReviews": len(reviews),
        "placeId": place_id,
    }


@app.post("/api/ai-generate-review")
async def ai_generate_review(payload: Dict[str, Any]):
    if not payload.get("platform"):
        return _failure(status.HTTP_400_BAD_REQUEST, "Platform is required")

    settings = get_settings()
    if not settings.gemini_api_key:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Gemini API key not configured"
        )

    try:
        generation_request = GenerationRequest.model_validate(payload)
    except ValidationError as exc:
        return _failure(
            status.HTTP_400_BAD_REQUEST, "Invalid generation request", details=str(exc)
        )

    try:
        result = await generate_review(
            generation_request,
            backend=_build_backend(settings),
            models=settings.candidate_models,
        )
    except AllModelsFailed as exc:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "All Gemini models failed to generate content",
            details=f"Tried models: {', '.join(exc.models_attempted)}",
            modelsAttempted=exc.models_attempted,
        )
    except Exception as exc:
        logger.exception("Error in AI review generation")
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            details=str(exc),
        )

    usage = result.token_usage
    return {
        "success": True,
        "generatedReview": result.generated_text,
        "metadata": {
            "platform": generation_request.platform,
            "originalReviewsCount": len(generation_request.existing_reviews),
            "generatedLength": len(result.generated_text),
            "modelUsed": result.model_used,
            "tokensUsed": usage.total,
            "promptTokens": usage.prompt,
            "responseTokens": usage.completion,
            "timestamp": _now(),
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "review_assist.server:app",
        host=os.getenv("REVIEW_API_HOST", "0.0.0.0"),
        port=int(os.getenv("REVIEW_API_PORT", "8000")),
        reload=os.getenv("REVIEW_API_RELOAD", "false").lower() == "true",
    )
