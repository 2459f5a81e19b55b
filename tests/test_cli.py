import json
from pathlib import Path

from typer.testing import CliRunner

from review_assist.cli import _build_pipeline, _to_plain, _write_output, app
from review_assist.config import Settings
from review_assist.errors import NoReviewsFound
from review_assist.generation import DirectGenerator, GenerationServiceClient
from review_assist.models import GenerationResult, ReviewRecord, TokenUsage
from review_assist.review_source import DirectReviewSource, ReviewSourceClient

runner = CliRunner()


def _result() -> GenerationResult:
    return GenerationResult(
        generated_text="Great hot pot.",
        model_used="gemini-2.5-flash",
        token_usage=TokenUsage(total=12, prompt=8, completion=4),
    )


class _StubSource:
    def __init__(self, reviews):
        self.reviews = reviews
        self.calls = []

    async def fetch(self, place_id):
        self.calls.append(place_id)
        return self.reviews


class _StubGenerator:
    def __init__(self):
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        return _result()


def _reviews():
    return [
        ReviewRecord(author_name="Lin", rating=5, text="Delicious broth", language_code="en"),
        ReviewRecord(author_name="Sam", rating=2, text="Slow service", language_code="en"),
    ]


def test_to_plain_serializes_paths_dataclasses_and_models(tmp_path):
    payload = _to_plain(
        {"out": tmp_path / "review.json", "result": _result(), "reviews": _reviews()[:1]}
    )
    assert payload["out"] == str(tmp_path / "review.json")
    assert payload["result"]["token_usage"]["total"] == 12
    assert payload["reviews"][0]["author"] == "Lin"
    json.dumps(payload)


def test_write_output_json_and_text(tmp_path):
    json_file = tmp_path / "review.json"
    _write_output(json_file, text="unused", json_payload=_to_plain(_result()))
    assert json.loads(json_file.read_text(encoding="utf-8"))["model_used"] == "gemini-2.5-flash"

    text_file = tmp_path / "review.txt"
    _write_output(text_file, text="Great hot pot.", json_payload={})
    assert text_file.read_text(encoding="utf-8") == "Great hot pot."


def test_build_pipeline_modes():
    settings = Settings()
    source, generator = _build_pipeline("api", settings)
    assert isinstance(source, ReviewSourceClient)
    assert isinstance(generator, GenerationServiceClient)
    source, generator = _build_pipeline("direct", settings)
    assert isinstance(source, DirectReviewSource)
    assert isinstance(generator, DirectGenerator)


def test_generate_command_writes_json(monkeypatch, tmp_path):
    source = _StubSource(_reviews())
    generator = _StubGenerator()
    monkeypatch.setattr(
        "review_assist.cli._build_pipeline", lambda mode, settings: (source, generator)
    )
    out = tmp_path / "review.json"

    result = runner.invoke(
        app, ["generate", "yelp", "--place-id", "p1", "--business-name", "Haidilao", "--out", str(out)]
    )

    assert result.exit_code == 0, result.output
    assert source.calls == ["p1"]
    assert generator.requests[0].business_name == "Haidilao"
    written = json.loads(Path(out).read_text(encoding="utf-8"))
    assert written["generated_text"] == "Great hot pot."


def test_generate_command_reports_pipeline_errors(monkeypatch):
    class _EmptySource(_StubSource):
        async def fetch(self, place_id):
            raise NoReviewsFound()

    monkeypatch.setattr(
        "review_assist.cli._build_pipeline",
        lambda mode, settings: (_EmptySource([]), _StubGenerator()),
    )
    result = runner.invoke(app, ["generate", "yelp", "--place-id", "p1"])
    assert result.exit_code == 1
    assert "No reviews found" in result.output


def test_generate_command_rejects_unknown_platform():
    result = runner.invoke(app, ["generate", "myspace", "--place-id", "p1"])
    assert result.exit_code != 0


def test_generate_command_rejects_unknown_mode():
    result = runner.invoke(app, ["generate", "yelp", "--place-id", "p1", "--mode", "agent"])
    assert result.exit_code != 0


def test_reviews_command_prints_summary(monkeypatch):
    source = _StubSource(_reviews())
    monkeypatch.setattr(
        "review_assist.cli._build_pipeline", lambda mode, settings: (source, _StubGenerator())
    )
    result = runner.invoke(app, ["reviews", "p1"])
    assert result.exit_code == 0, result.output
    assert "Positive reviews: 1" in result.output
    assert "delicious" in result.output


def test_links_command(monkeypatch):
    monkeypatch.setenv("BUSINESS_NAME", "Test Pot")
    result = runner.invoke(app, ["links"])
    assert result.exit_code == 0, result.output
    assert "Test Pot" in result.output
    assert "google-maps" in result.output
    assert "yelp:///biz/" in result.output
