"""Tests for describer adapters with a mocked HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from imagehub.llm import provider_config
from imagehub.llm.describers import (
    GeminiDescriber,
    OllamaDescriber,
    VertexDescriber,
    extract_candidate_text,
    get_describer,
)


def fake_session(json_body=None, status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = {} if json_body is None else json_body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    session = MagicMock()
    session.post.return_value = response
    return session


def gemini_reply(*texts):
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


@pytest.fixture(autouse=True)
def no_ambient_keys(monkeypatch, tmp_path):
    for name in ("GEMINI_API_KEY", "VERTEX_ACCESS_TOKEN", "VERTEX_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestOllama:
    def test_payload_embeds_inline_image(self):
        session = fake_session({"response": " A red square. "})
        describer = OllamaDescriber(url="http://ollama:11434/", model="llava:7b", session=session)

        answer = describer.describe_image("QUJD", "image/png", "What is this?")

        assert answer == "A red square."
        url = session.post.call_args[0][0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/generate"
        assert payload["model"] == "llava:7b"
        assert payload["images"] == ["QUJD"]
        assert payload["stream"] is False
        assert payload["prompt"].startswith("What is this?\n")
        assert "![image](data:image/png;base64,QUJD)" in payload["prompt"]

    def test_connection_error_becomes_diagnostic(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        answer = OllamaDescriber(session=session).describe_image("QUJD", "image/png", "hi")

        assert answer.startswith("OLLAMA HTTP ERROR")

    def test_timeout_becomes_diagnostic(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.Timeout()

        answer = OllamaDescriber(session=session).describe_image("QUJD", "image/png", "hi")

        assert "timeout" in answer

    def test_empty_image_is_rejected_without_request(self):
        session = fake_session()

        assert OllamaDescriber(session=session).describe_image("", "image/png", "hi") == "No image data provided."
        session.post.assert_not_called()

    def test_non_object_body_is_malformed(self):
        session = fake_session(["unexpected"])

        answer = OllamaDescriber(session=session).describe_image("QUJD", "image/png", "hi")

        assert answer == "OLLAMA RESPONSE MALFORMED"

    def test_non_string_response_field(self):
        session = fake_session({"response": 42})

        assert OllamaDescriber(session=session).describe_image("QUJD", "image/png", "hi") == "42"


class TestGemini:
    def test_request_shape(self):
        session = fake_session(gemini_reply("first", "  ", "second"))
        describer = GeminiDescriber(api_key="k-123", model="gemini-x", session=session)

        answer = describer.describe_image("QUJD", "image/png", "Describe")

        assert answer == "first\nsecond"
        url = session.post.call_args[0][0]
        kwargs = session.post.call_args.kwargs
        assert url.endswith("/models/gemini-x:generateContent")
        assert kwargs["headers"] == {"x-goog-api-key": "k-123"}
        parts = kwargs["json"]["contents"][0]["parts"]
        assert parts[0] == {"text": "Describe"}
        assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}
        assert kwargs["json"]["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 1024}

    def test_missing_key(self):
        session = fake_session()
        answer = GeminiDescriber(session=session).describe_image("QUJD", "image/png", "x")

        assert "key missing" in answer
        session.post.assert_not_called()

    def test_http_error_includes_status_and_body(self):
        session = fake_session(status_code=403, text="forbidden " * 200)
        answer = GeminiDescriber(api_key="k", session=session).describe_image("QUJD", "image/png", "x")

        assert answer.startswith("GEMINI HTTP ERROR (403): forbidden")
        assert answer.endswith("...")

    def test_malformed_response(self):
        session = fake_session()
        session.post.return_value.json.side_effect = ValueError("not json")

        answer = GeminiDescriber(api_key="k", session=session).describe_image("QUJD", "image/png", "x")

        assert answer == "GEMINI RESPONSE MALFORMED"

    def test_list_body_is_malformed(self):
        session = fake_session([gemini_reply("hidden")])

        answer = GeminiDescriber(api_key="k", session=session).describe_image("QUJD", "image/png", "x")

        assert answer == "GEMINI RESPONSE MALFORMED"

    def test_string_candidate_is_skipped(self):
        session = fake_session({"candidates": ["oops"]})

        answer = GeminiDescriber(api_key="k", session=session).describe_image("QUJD", "image/png", "x")

        assert answer == "(no text response)"

    def test_endpoint_comes_from_provider_config(self, monkeypatch):
        monkeypatch.setitem(
            provider_config.DESCRIBER_PROVIDERS["gemini"], "url", "https://gemini.local/v9/models/"
        )
        session = fake_session(gemini_reply("ok"))

        GeminiDescriber(api_key="k", model="m1", session=session).describe_image("QUJD", "image/png", "x")

        assert session.post.call_args[0][0] == "https://gemini.local/v9/models/m1:generateContent"

    def test_with_model_does_not_mutate(self):
        describer = GeminiDescriber(api_key="k", model="a", session=fake_session())
        other = describer.with_model(" b ")

        assert describer.model == "a"
        assert other.model == "b"
        assert describer.with_model("  ") is describer


class TestKeyResolution:
    def test_explicit_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        (tmp_path / "gemini_api_key.txt").write_text("from-file")

        assert GeminiDescriber(api_key=" explicit ").api_key == "explicit"

    def test_env_before_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        (tmp_path / "gemini_api_key.txt").write_text("from-file")

        assert GeminiDescriber().api_key == "from-env"

    def test_file_fallback(self, tmp_path):
        (tmp_path / "gemini_api_key.txt").write_text("from-file\n")

        assert GeminiDescriber().api_key == "from-file"

    def test_secrets_directory(self, tmp_path):
        (tmp_path / "secrets").mkdir()
        (tmp_path / "secrets" / "gemini_api_key.txt").write_text("secret")

        assert GeminiDescriber().api_key == "secret"

    def test_blank_file_is_missing(self, tmp_path):
        (tmp_path / "gemini_api_key.txt").write_text("   ")

        assert provider_config.load_key("gemini_api_key.txt") is None


class TestVertex:
    def test_bearer_token_request(self):
        session = fake_session(gemini_reply("a cat"))
        describer = VertexDescriber(
            project="proj",
            location="europe-west4",
            model="gemini-1.5-pro",
            access_token="tok",
            session=session,
        )

        answer = describer.describe_image("QUJD", "image/jpeg", "What?")

        assert answer == "a cat"
        assert describer.resource_name == (
            "projects/proj/locations/europe-west4/publishers/google/models/gemini-1.5-pro"
        )
        url = session.post.call_args[0][0]
        kwargs = session.post.call_args.kwargs
        assert url == (
            "https://europe-west4-aiplatform.googleapis.com/v1/"
            "projects/proj/locations/europe-west4/publishers/google/models/gemini-1.5-pro:generateContent"
        )
        assert kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert kwargs["params"] is None

    def test_api_key_request(self):
        session = fake_session(gemini_reply("x"))
        VertexDescriber(project="p", api_key="key", session=session).describe_image("QUJD", "image/png", "y")

        kwargs = session.post.call_args.kwargs
        assert kwargs["params"] == {"key": "key"}
        assert kwargs["headers"] is None

    def test_missing_project_or_credentials(self):
        session = fake_session()

        assert "project missing" in VertexDescriber(project="", access_token="t", session=session).describe_image("Q", "image/png", "")
        assert "credentials missing" in VertexDescriber(project="p", session=session).describe_image("Q", "image/png", "")
        session.post.assert_not_called()


class TestExtractCandidateText:
    def test_no_candidates(self):
        assert extract_candidate_text({}) == "(no candidates)"
        assert extract_candidate_text({"candidates": []}) == "(no candidates)"

    def test_no_text(self):
        assert extract_candidate_text({"candidates": [{"content": {}}]}) == "(no text response)"

    def test_multiple_candidates(self):
        data = {"candidates": [gemini_reply("a")["candidates"][0], gemini_reply("b")["candidates"][0]]}

        assert extract_candidate_text(data) == "a\nb"

    def test_odd_shapes_are_skipped(self):
        data = {
            "candidates": [
                "oops",
                {"content": "text"},
                {"content": {"parts": "text"}},
                {"content": {"parts": ["loose", {"text": 7}, {"text": "kept"}]}},
            ]
        }

        assert extract_candidate_text(data) == "kept"
        assert extract_candidate_text({"candidates": "abc"}) == "(no candidates)"

    def test_non_object_body_raises(self):
        with pytest.raises(TypeError):
            extract_candidate_text(["candidates"])


class TestGetDescriber:
    def test_known_providers(self):
        assert isinstance(get_describer("ollama"), OllamaDescriber)
        assert isinstance(get_describer("GEMINI", api_key="k"), GeminiDescriber)
        assert isinstance(get_describer("vertex", project="p"), VertexDescriber)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_describer("nope")
