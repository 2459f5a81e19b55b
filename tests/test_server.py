import pytest
from fastapi.testclient import TestClient

from review_assist.errors import SourceParseError, SourceUnavailable
from review_assist.generation import BackendResponse
from review_assist.models import ReviewRecord, TokenUsage
from review_assist.server import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "places-key")
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
    monkeypatch.setenv("CANDIDATE_MODELS", '["m1", "m2", "m3"]')
    return TestClient(app)


def _reviews():
    return [
        ReviewRecord(
            review_id="review_0",
            author_name="Lin",
            rating=5,
            text="Amazing broth",
            relative_time="a week ago",
            publish_time="2025-05-01T10:00:00Z",
            language_code="en",
        )
    ]


class _StubBackend:
    def __init__(self, answers):
        self.answers = answers
        self.models = []

    async def generate(self, model_name, prompt):
        self.models.append(model_name)
        answer = self.answers[model_name]
        if isinstance(answer, Exception):
            raise answer
        return BackendResponse(text=answer, usage=TokenUsage(total=15, prompt=10, completion=5))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials():
    cors = next(m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware")
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_status_reports_configured_keys(client, monkeypatch):
    data = client.get("/api/status").json()
    assert data["success"] is True
    assert data["hasApiKey"] is True
    assert data["hasGeminiKey"] is True
    assert "timestamp" in data

    monkeypatch.delenv("GEMINI_API_KEY")
    assert client.get("/api/status").json()["hasGeminiKey"] is False


def test_google_reviews_requires_place_id(client):
    resp = client.get("/api/google-reviews")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Place ID is required"}


def test_google_reviews_requires_api_key(client, monkeypatch):
    monkeypatch.delenv("GOOGLE_PLACES_API_KEY")
    resp = client.get("/api/google-reviews", params={"placeId": "p"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Google Places API key not configured"


def test_google_reviews_success_envelope(client, monkeypatch):
    seen = {}

    async def fake_fetch(place_id, **kwargs):
        seen["place_id"] = place_id
        seen["api_key"] = kwargs["api_key"]
        return _reviews()

    monkeypatch.setattr("review_assist.server.fetch_place_reviews", fake_fetch)
    resp = client.get("/api/google-reviews", params={"placeId": "ChIJ1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["totalReviews"] == 1
    assert data["placeId"] == "ChIJ1"
    assert data["reviews"][0] == {
        "id": "review_0",
        "author": "Lin",
        "rating": 5,
        "text": "Amazing broth",
        "time": "a week ago",
        "publishTime": "2025-05-01T10:00:00Z",
        "languageCode": "en",
    }
    assert seen == {"place_id": "ChIJ1", "api_key": "places-key"}


def test_google_reviews_empty(client, monkeypatch):
    async def fake_fetch(place_id, **kwargs):
        return []

    monkeypatch.setattr("review_assist.server.fetch_place_reviews", fake_fetch)
    data = client.get("/api/google-reviews", params={"placeId": "p"}).json()
    assert data == {"success": True, "reviews": [], "message": "No reviews found for this place"}


def test_google_reviews_upstream_status_is_forwarded(client, monkeypatch):
    async def fake_fetch(place_id, **kwargs):
        raise SourceUnavailable(
            "Google Places API error: 403", status_code=403, details="PERMISSION_DENIED"
        )

    monkeypatch.setattr("review_assist.server.fetch_place_reviews", fake_fetch)
    resp = client.get("/api/google-reviews", params={"placeId": "p"})
    assert resp.status_code == 403
    assert resp.json() == {
        "success": False,
        "error": "Google Places API error: 403",
        "details": "PERMISSION_DENIED",
    }


def test_google_reviews_invalid_json(client, monkeypatch):
    async def fake_fetch(place_id, **kwargs):
        raise SourceParseError("Parse error: Expecting value")

    monkeypatch.setattr("review_assist.server.fetch_place_reviews", fake_fetch)
    resp = client.get("/api/google-reviews", params={"placeId": "p"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Invalid JSON response from Google Places API"


def test_generate_requires_platform(client):
    resp = client.post("/api/ai-generate-review", json={"existingReviews": []})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Platform is required"


def test_generate_requires_api_key(client, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY")
    resp = client.post("/api/ai-generate-review", json={"platform": "yelp"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Gemini API key not configured"


def test_generate_success_metadata(client, monkeypatch):
    backend = _StubBackend({"m1": RuntimeError("overloaded"), "m2": '"Great night out."', "m3": "x"})
    monkeypatch.setattr("review_assist.server._build_backend", lambda settings: backend)

    resp = client.post(
        "/api/ai-generate-review",
        json={
            "platform": "yelp",
            "businessName": "Haidilao",
            "existingReviews": ["Amazing broth", {"text": {"text": "Nice staff"}}],
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["generatedReview"] == "Great night out."
    meta = data["metadata"]
    assert meta["platform"] == "yelp"
    assert meta["originalReviewsCount"] == 2
    assert meta["generatedLength"] == len("Great night out.")
    assert meta["modelUsed"] == "m2"
    assert (meta["tokensUsed"], meta["promptTokens"], meta["responseTokens"]) == (15, 10, 5)
    assert backend.models == ["m1", "m2"]


def test_generate_all_models_failed_envelope(client, monkeypatch):
    backend = _StubBackend({"m1": "", "m2": "  ", "m3": RuntimeError("blocked")})
    monkeypatch.setattr("review_assist.server._build_backend", lambda settings: backend)

    resp = client.post("/api/ai-generate-review", json={"platform": "google-maps"})
    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "All Gemini models failed to generate content",
        "details": "Tried models: m1, m2, m3",
        "modelsAttempted": ["m1", "m2", "m3"],
    }


def test_business_links(client, monkeypatch):
    monkeypatch.setenv("BUSINESS_NAME", "Test Pot")
    monkeypatch.setenv("YELP_BUSINESS_ID", "test-pot")
    data = client.get("/api/business").json()
    assert data["business"]["name"] == "Test Pot"
    assert data["links"]["yelp"]["web"] == "https://www.yelp.com/biz/test-pot"
    assert data["links"]["yelp"]["ios"] == "yelp:///biz/test-pot"
