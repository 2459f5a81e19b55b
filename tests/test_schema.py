import pytest

from review_assist.schema import default_schema_path, load_schema, validate_place_payload


def test_schema_path_exists():
    path = default_schema_path()
    assert path.exists()
    assert path.name == "place_reviews.json"


def test_load_schema_is_cached():
    first = load_schema()
    second = load_schema()
    assert first is second
    assert first["title"] == "PlaceReviews"


def test_valid_payloads_pass():
    payload = {
        "reviews": [
            {
                "rating": 4,
                "text": {"text": "Good", "languageCode": "en"},
                "authorAttribution": {"displayName": "Kim"},
            },
            {"rating": 5, "text": "legacy plain text", "author_name": "Lee"},
        ]
    }
    assert validate_place_payload(payload) is payload
    assert validate_place_payload({}) == {}


def test_invalid_payload_reports_location():
    payload = {"reviews": [{"rating": "five", "text": {"text": 3}}]}
    with pytest.raises(ValueError) as excinfo:
        validate_place_payload(payload)
    message = str(excinfo.value)
    assert message.startswith("Schema validation failed:")
    assert "reviews.0.rating" in message
