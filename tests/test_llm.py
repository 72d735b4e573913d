"""Tests for story_episode.llm.HttpLLM."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from story_episode.config import Settings
from story_episode.llm import HttpLLM, LLMError

SCENE_TEXT = "DIALOGUE: Ready?\nCHOICE A [joy+1, +2]: Yes"


def _mock_response(body: object, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


class TestKoboldCpp:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(provider_url="http://localhost:5001/")

    async def test_happy_path(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": SCENE_TEXT}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("scene", "prompt") == SCENE_TEXT

    async def test_request_shape(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("scene", "my prompt")
        assert mock_post.call_args[0][0] == "/api/v1/generate"
        assert mock_post.call_args.kwargs["json"] == {
            "prompt": "my prompt", "max_length": 300, "temperature": 0.8,
        }

    def test_base_url_and_headers(self, llm: HttpLLM) -> None:
        assert llm.base_url == "http://localhost:5001"
        assert "Authorization" not in llm._client.headers

    def test_bearer_token(self) -> None:
        llm = HttpLLM(provider_url="http://localhost:5001", api_key="secret")
        assert llm._client.headers["Authorization"] == "Bearer secret"

    async def test_connect_error(self, llm: HttpLLM) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ConnectError("refused"))):
            with pytest.raises(LLMError, match="Cannot connect"):
                await llm("scene", "prompt")

    async def test_timeout(self, llm: HttpLLM) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
            with pytest.raises(LLMError, match="timed out"):
                await llm("scene", "prompt")

    async def test_http_error(self, llm: HttpLLM) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response({}, 503))):
            with pytest.raises(LLMError, match="HTTP 503"):
                await llm("scene", "prompt")

    @pytest.mark.parametrize("body", [{"x": 1}, {"results": []}, {"results": ["text"]}, []])
    async def test_malformed_response(self, llm: HttpLLM, body: object) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
            with pytest.raises(LLMError, match="Unexpected response format"):
                await llm("scene", "prompt")


class TestOpenAI:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(provider_url="http://localhost:8080", provider_format="openai",
                       model="mistral-7b")

    async def test_request_shape(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("scene", "prompt") == "ok"
        assert mock_post.call_args[0][0] == "/v1/completions"
        assert mock_post.call_args.kwargs["json"] == {
            "prompt": "prompt", "max_tokens": 300, "temperature": 0.8, "model": "mistral-7b",
        }

    def test_model_omitted_when_empty(self) -> None:
        llm = HttpLLM(provider_url="http://localhost:8080", provider_format="openai")
        assert "model" not in llm.request_body("p")

    async def test_kobold_body_rejected(self, llm: HttpLLM) -> None:
        body = {"results": [{"text": "wrong format"}]}
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
            with pytest.raises(LLMError, match="Unexpected response format from openai"):
                await llm("scene", "prompt")


class TestConstruction:
    def test_from_settings(self) -> None:
        llm = HttpLLM.from_settings(Settings(llm_url="http://x:1", llm_format="openai",
                                             llm_model="m"))
        assert llm.provider_format == "openai"
        assert llm.model == "m"

    def test_missing_url(self) -> None:
        with pytest.raises(LLMError, match="No generation backend"):
            HttpLLM.from_settings(Settings())

    def test_unknown_format(self) -> None:
        with pytest.raises(LLMError, match="Unknown provider format"):
            HttpLLM(provider_url="http://x", provider_format="grpc")

    async def test_aclose(self) -> None:
        llm = HttpLLM(provider_url="http://x")
        await llm.aclose()
        assert llm._client.is_closed
