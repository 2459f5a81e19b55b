"""Prompt builder: platform policy + business framing + real review exemplars.

Everything here is pure; the same request always yields the same prompt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .models import GenerationRequest, Platform, PlatformPolicy, ReviewRecord
from .review_source import review_text

DEFAULT_BUSINESS_NAME = "this restaurant"
DEFAULT_BUSINESS_TYPE = "hot pot restaurant"
MAX_EXEMPLARS = 5

PLATFORM_POLICIES: Dict[str, PlatformPolicy] = {
    Platform.GOOGLE_MAPS.value: PlatformPolicy(
        display_name="Google Maps",
        tone_requirements=[
            "Warm and natural, like recommending a place to a friend",
            "May mention service, food quality and atmosphere",
            "May say whether you would recommend it to others",
        ],
        length_range="50-150 words",
    ),
    Platform.YELP.value: PlatformPolicy(
        display_name="Yelp",
        tone_requirements=[
            "Friendly but informed",
            "Describe the food, the service and the overall experience in detail",
            "May mention value for money and how strongly you recommend it",
        ],
        length_range="100-200 words",
    ),
    Platform.TRIPADVISOR.value: PlatformPolicy(
        display_name="TripAdvisor",
        tone_requirements=[
            "A more formal register aimed at travelers",
            "Emphasize what makes the visit worthwhile and unique",
            "May mention the location and whether it is worth a stop on a trip",
        ],
        length_range="100-250 words",
    ),
    Platform.OPENTABLE.value: PlatformPolicy(
        display_name="OpenTable",
        tone_requirements=[
            "Focus on the reservation and the dining service",
            "Mention the booking process, punctuality and quality of service",
            "Suitable for business meals or special occasions",
        ],
        length_range="80-150 words",
    ),
}

AUTHENTICITY_CONSTRAINTS = (
    "Keep it genuine and natural; avoid exaggeration",
    "Match the writing habits of this platform's users",
    "Keep a moderate length, neither too long nor too short",
    "Convey a real dining experience",
    "Feel free to mention specific dishes, service or ambience details",
)

CLOSING_INSTRUCTION = (
    "Output only the review itself, with no preamble, title, quotes or explanation:"
)


def resolve_policy(platform: str | None) -> PlatformPolicy:
    """Policy for a platform; unknown values fall back to Google Maps."""
    key = (platform or "").strip().lower()
    return PLATFORM_POLICIES.get(key, PLATFORM_POLICIES[Platform.GOOGLE_MAPS.value])


def _structured_text(review: Any) -> str:
    if isinstance(review, ReviewRecord):
        return review.text
    if isinstance(review, Mapping):
        return review_text(review)
    return ""


def extract_review_texts(reviews: Sequence[Any]) -> List[str]:
    """
    Pull exemplar text out of each review.

    Raw strings pass through untouched; structured reviews use the
    translated -> original -> empty preference and blank results are dropped.
    """
    texts: List[str] = []
    for review in reviews:
        if isinstance(review, str):
            texts.append(review)
            continue
        text = _structured_text(review)
        if text.strip():
            texts.append(text)
    return texts


def _bullets(lines: Iterable[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def build_prompt(request: GenerationRequest) -> str:
    """Compose the generation prompt for one request."""
    policy = resolve_policy(request.platform)
    business_name = request.business_name or DEFAULT_BUSINESS_NAME
    business_type = request.business_type or DEFAULT_BUSINESS_TYPE

    exemplars = extract_review_texts(request.existing_reviews)[:MAX_EXEMPLARS]
    exemplar_block = (
        "Examples of existing reviews:\n" + "\n\n".join(exemplars) + "\n\n"
        if exemplars
        else ""
    )

    requirements = [
        policy.language,
        *policy.tone_requirements,
        f"Keep the length within {policy.length_range}",
    ]

    return (
        "You are an experienced restaurant reviewer. Based on the information below, "
        f'write one genuine, natural {policy.display_name} review for "{business_name}" '
        f"({business_type}).\n\n"
        f"{exemplar_block}"
        "The review must meet these requirements:\n\n"
        f"{_bullets(requirements)}\n\n"
        "Keep in mind:\n"
        f"{_bullets(AUTHENTICITY_CONSTRAINTS)}\n\n"
        f"{CLOSING_INSTRUCTION}"
    )


# --- Review analysis -------------------------------------------------------------

POSITIVE_WORDS = (
    "delicious",
    "amazing",
    "excellent",
    "great",
    "wonderful",
    "perfect",
    "fresh",
    "tasty",
    "friendly",
    "professional",
    "clean",
    "cozy",
    "美味",
    "好吃",
    "新鲜",
    "优质",
    "专业",
    "友好",
    "干净",
    "舒适",
)

ASPECT_MARKERS = {
    "service": ("service", "服务"),
    "food": ("food", "食物", "菜"),
    "atmosphere": ("atmosphere", "环境"),
    "price": ("price", "价格"),
}


@dataclass
class ReviewAnalysis:
    common_keywords: List[str] = field(default_factory=list)
    positive_aspects: List[str] = field(default_factory=list)
    avg_length: int = 100


def analyze_existing_reviews(texts: Sequence[str]) -> ReviewAnalysis:
    """Summarize praise vocabulary, praised aspects and typical length of reviews."""
    if not texts:
        return ReviewAnalysis()

    all_text = " ".join(texts).lower()
    avg_length = round(sum(len(text) for text in texts) / len(texts))
    return ReviewAnalysis(
        common_keywords=[word for word in POSITIVE_WORDS if word in all_text],
        positive_aspects=[
            aspect
            for aspect, markers in ASPECT_MARKERS.items()
            if any(marker in all_text for marker in markers)
        ],
        avg_length=avg_length,
    )
