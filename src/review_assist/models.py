"""Data models for the review generation pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_LANGUAGE_CODE = "zh-CN"


class Platform(str, Enum):
    """Review platforms a landing page links out to."""

    GOOGLE_MAPS = "google-maps"
    YELP = "yelp"
    TRIPADVISOR = "tripadvisor"
    OPENTABLE = "opentable"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Platform"]:
        """Return the matching platform, or None for unknown values."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ReviewRecord(BaseModel):
    """One normalized review, as served by the review-source endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    review_id: str = Field("", alias="id")
    author_name: str = Field("Anonymous", alias="author")
    rating: int = Field(..., ge=1, le=5)
    text: str = ""
    relative_time: str = Field("", alias="time")
    publish_time: str = Field("", alias="publishTime")
    language_code: str = Field(DEFAULT_LANGUAGE_CODE, alias="languageCode")


ExistingReview = Annotated[
    Union[str, ReviewRecord, Dict[str, Any]], Field(union_mode="left_to_right")
]


class GenerationRequest(BaseModel):
    """Everything the generator needs for one review."""

    model_config = ConfigDict(populate_by_name=True)

    platform: str
    business_name: Optional[str] = Field(None, alias="businessName")
    business_type: Optional[str] = Field(None, alias="businessType")
    existing_reviews: List[ExistingReview] = Field(
        default_factory=list, alias="existingReviews"
    )


@dataclass(frozen=True)
class PlatformPolicy:
    display_name: str
    tone_requirements: List[str]
    length_range: str
    language: str = "Write in English"


@dataclass
class ModelAttempt:
    """Outcome of a single candidate model call; kept only for diagnostics."""

    model_name: str
    outcome: str  # success | empty | error
    error_detail: Optional[str] = None


@dataclass
class TokenUsage:
    total: int = 0
    prompt: int = 0
    completion: int = 0


@dataclass
class GenerationResult:
    generated_text: str
    model_used: str
    token_usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class LinkTarget:
    """A landing-page link that may trigger review generation before redirecting."""

    href: str
    title: str = ""
    platform: Optional[str] = None
    business_name: Optional[str] = None
    place_id: Optional[str] = None
    is_email: bool = False
