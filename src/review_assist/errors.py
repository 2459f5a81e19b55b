"""Failure taxonomy shared by the pipeline components."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from .models import ModelAttempt


class ReviewAssistError(Exception):
    """Base exception for review assistant failures."""


class MissingCredential(ReviewAssistError):
    """A backend API key is not configured."""


class SourceUnavailable(ReviewAssistError):
    """The review source could not be reached or answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class SourceParseError(ReviewAssistError):
    """The review source answered with a payload we cannot read."""


class NoPlaceIdentifier(ReviewAssistError):
    """Neither the link nor the environment provides a place id."""

    def __init__(self, message: str = "No place ID available for fetching reviews"):
        super().__init__(message)


class NoReviewsFound(ReviewAssistError):
    """The place exists but has no reviews to learn from."""

    def __init__(self, message: str = "No reviews found for the specified location"):
        super().__init__(message)


class AllModelsFailed(ReviewAssistError):
    """Every candidate model errored or returned empty text."""

    def __init__(
        self,
        models_attempted: Sequence[str],
        attempts: Sequence["ModelAttempt"] = (),
    ):
        self.models_attempted: List[str] = list(models_attempted)
        self.attempts = list(attempts)
        super().__init__(
            "All Gemini models failed to generate content "
            f"(tried models: {', '.join(self.models_attempted)})"
        )


class GenerationUnavailable(ReviewAssistError):
    """The generation endpoint failed for a reason other than exhausting models."""


class ClipboardUnavailable(ReviewAssistError):
    """Neither clipboard path could copy the text."""
