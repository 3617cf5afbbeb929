# tests/test_llm_client.py
"""
Tests for the Vertex AI REST client
"""
import pytest
import requests
from google.auth import exceptions as auth_exceptions

from interview_preparator.infrastructure.llm import LLMError, VertexRestClient


@pytest.fixture
def client(mocker):
    c = VertexRestClient(project="test-project", session=mocker.Mock(spec=requests.Session))
    c._token = "test-token"
    return c


@pytest.fixture
def post(client):
    return client.session.post


def reply(post, mocker, status=200, payload=None, text=""):
    response = mocker.Mock()
    response.status_code = status
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    post.return_value = response


def candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGenerateContent:
    """Request building and response parsing"""

    def test_returns_first_text_part(self, client, post, mocker):
        reply(post, mocker, payload=candidate("What motivates you?"))

        text = client.generate_content("prompt", temperature=0.7)

        assert text == "What motivates you?"
        body = post.call_args.kwargs["json"]
        assert body["contents"][0]["parts"][0]["text"] == "prompt"
        assert body["generationConfig"]["temperature"] == 0.7
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-token"
        assert post.call_args.args[0].endswith(
            "projects/test-project/locations/us-central1/publishers/google/models/gemini-2.5-flash-lite:generateContent"
        )

    def test_optional_sampling_parameters(self, client, post, mocker):
        reply(post, mocker, payload=candidate("ok"))

        client.generate_content("p", top_k=5, top_p=0.9, stop_sequences=["END"])

        config = post.call_args.kwargs["json"]["generationConfig"]
        assert config["topK"] == 5
        assert config["topP"] == 0.9
        assert config["stopSequences"] == ["END"]

    def test_no_text_gives_empty_string(self, client, post, mocker):
        reply(post, mocker, payload={"candidates": [{"content": {"parts": []}}]})

        assert client.generate_content("p") == ""

    def test_http_error(self, client, post, mocker):
        reply(post, mocker, status=500, text="internal")

        with pytest.raises(LLMError, match="Vertex REST error 500"):
            client.generate_content("p")

    def test_unauthorized_refreshes_and_retries_once(self, client, post, mocker):
        reply(post, mocker, status=401, text="expired")
        mocker.patch.object(client, "_refresh_token", side_effect=lambda: setattr(client, "_token", "fresh"))

        with pytest.raises(LLMError, match="401"):
            client.generate_content("p")

        assert post.call_count == 2
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer fresh"
        assert client._token is None

    def test_retry_after_refresh_succeeds(self, client, post, mocker):
        expired, ok = mocker.Mock(status_code=401, text="expired"), mocker.Mock(status_code=200)
        ok.json.return_value = candidate("Welcome back")
        post.side_effect = [expired, ok]
        mocker.patch.object(client, "_refresh_token", side_effect=lambda: setattr(client, "_token", "fresh"))

        assert client.generate_content("p") == "Welcome back"
        assert client._token == "fresh"

    def test_network_failure(self, client, post):
        post.side_effect = requests.ConnectionError("down")

        with pytest.raises(LLMError, match="request failed"):
            client.generate_content("p")

    def test_non_json_body(self, client, post, mocker):
        reply(post, mocker, payload=ValueError("bad json"))

        with pytest.raises(LLMError, match="non-JSON"):
            client.generate_content("p")

    def test_blocked_prompt(self, client, post, mocker):
        reply(post, mocker, payload={"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(LLMError, match="SAFETY"):
            client.generate_content("p")

    def test_authentication_failure(self, mocker):
        mocker.patch(
            "google.auth.default",
            side_effect=auth_exceptions.DefaultCredentialsError("no credentials"),
        )
        session = mocker.Mock(spec=requests.Session)
        client = VertexRestClient(project="test-project", session=session)

        with pytest.raises(LLMError, match="Could not authenticate"):
            client.generate_content("p")

        session.post.assert_not_called()


class TestGenerateJson:
    """JSON responses wrapped in extra text"""

    def test_plain_json(self, client, post, mocker):
        reply(post, mocker, payload=candidate('{"assessment":"good","scoreOutOf10":8}'))

        assert client.generate_json("grade this") == {"assessment": "good", "scoreOutOf10": 8}
        assert "Respond ONLY with minified JSON." in post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]

    def test_json_wrapped_in_fences(self, client, post, mocker):
        reply(post, mocker, payload=candidate('```json\n{"strength":"clear"}\n```'))

        assert client.generate_json("p") == {"strength": "clear"}

    def test_unparseable(self, client, post, mocker):
        reply(post, mocker, payload=candidate("I cannot grade that"))

        with pytest.raises(LLMError, match="Failed to parse feedback JSON"):
            client.generate_json("p")

    def test_non_object(self, client, post, mocker):
        reply(post, mocker, payload=candidate("[1, 2]"))

        with pytest.raises(LLMError):
            client.generate_json("p")
