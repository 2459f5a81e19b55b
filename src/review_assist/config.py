"""Configuration helpers for the review assistant."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    google_places_api_key: str | None = Field(None, alias="GOOGLE_PLACES_API_KEY")
    default_place_id: str | None = Field(
        None,
        alias="GOOGLE_PLACE_ID",
        description="Place used when a link does not carry its own place id.",
    )

    candidate_models: List[str] = Field(
        default_factory=lambda: [
            "gemini-2.5-flash",
            "gemini-1.5-pro",
            "gemini-1.5-flash",
        ],
        alias="CANDIDATE_MODELS",
        description="Gemini models tried in order until one returns text.",
    )
    temperature: float = Field(0.8, description="Generation temperature.")
    top_p: float = Field(0.95, description="Nucleus sampling probability mass.")
    top_k: int = Field(40, description="Top-k sampling cutoff.")
    max_output_tokens: int = Field(1024, description="Cap on generated tokens.")
    thinking_budget: int = Field(
        0, description="Extended reasoning budget; 0 keeps generation fast."
    )

    fallback_language_code: str = Field(
        "zh-CN", description="Language code used when a review carries none."
    )
    default_business_name: str = Field("this restaurant")
    default_business_type: str = Field("hot pot restaurant")

    places_api_url: str = Field(
        "https://places.googleapis.com/v1/places",
        description="Google Places (New) place details endpoint.",
    )
    api_base_url: str = Field(
        "http://127.0.0.1:8000",
        alias="REVIEW_API_BASE_URL",
        description="Where the review and generation endpoints are served.",
    )
    http_timeout_seconds: float = Field(20.0, alias="HTTP_TIMEOUT_SECONDS")

    success_redirect_delay: float = Field(
        1.0, description="Seconds to keep the success notification up before redirecting."
    )
    error_redirect_delay: float = Field(
        0.5, description="Seconds to keep the error notification up before redirecting."
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    business_name: str = Field("Haidilao Hot Pot Brentwood", alias="BUSINESS_NAME")
    business_address: str = Field("Brentwood, CA", alias="BUSINESS_ADDRESS")
    yelp_business_id: str = Field(
        "haidilao-hot-pot-brentwood", alias="YELP_BUSINESS_ID"
    )
    tripadvisor_id: str = Field("", alias="TRIPADVISOR_ID")
    opentable_id: str = Field("", alias="OPENTABLE_ID")
    google_maps_url: str | None = Field(None, alias="GOOGLE_MAPS_URL")
    yelp_url: str | None = Field(None, alias="YELP_URL")
    tripadvisor_url: str | None = Field(None, alias="TRIPADVISOR_URL")
    opentable_url: str | None = Field(None, alias="OPENTABLE_URL")


def get_settings() -> Settings:
    """Return a settings instance read from the current environment."""
    return Settings()
