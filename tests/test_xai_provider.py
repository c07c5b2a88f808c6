"""Unit tests for the xAI estimation provider."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from nutrilog.core.config import Settings
from nutrilog.models.food import Classification
from nutrilog.services.estimation.factory import clear_client_cache, get_estimation_client
from nutrilog.services.estimation.xai_provider import XAIEstimationClient, extract_output_text


def _response(payload, status_code=200):
    return MagicMock(status_code=status_code, json=lambda: payload, text=json.dumps(payload))


def _output_text(data) -> dict:
    return {"output_text": json.dumps(data)}


class TestExtractOutputText:
    """Tests for pulling text out of a responses API payload."""

    def test_prefers_output_text(self):
        assert extract_output_text({"output_text": '{"a": 1}', "output": []}) == '{"a": 1}'

    def test_reads_content_parts(self):
        payload = {
            "output_text": "   ",
            "output": [
                {"type": "reasoning"},
                {"content": [{"type": "output_text", "text": '{"items": []}'}]},
            ],
        }
        assert extract_output_text(payload) == '{"items": []}'

    def test_json_and_value_parts(self):
        assert extract_output_text({"output": [{"content": [{"json": "{}"}]}]}) == "{}"
        assert extract_output_text({"output": [{"content": [{"value": "[]"}]}]}) == "[]"

    def test_missing_content(self):
        assert extract_output_text(None) == ""
        assert extract_output_text({"output": "nope"}) == ""


class TestXAIEstimationClient:
    """Tests for XAIEstimationClient."""

    @pytest.fixture
    def client(self):
        """Create a test client."""
        return XAIEstimationClient(auth_token="secret", model="grok-test", timeout=5.0)

    @pytest.mark.asyncio
    async def test_extract_items_success(self, client):
        """Test a successful text extraction call."""
        payload = _output_text(
            {
                "items": [
                    {"name": "rice", "quantity": 100, "unit": "g", "grams_estimate": 100, "confidence": 0.9},
                    {"name": "egg", "quantity": 2, "unit": "count", "grams": 100, "confidence": "high"},
                ]
            }
        )

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(return_value=_response(payload))
            mock_get_client.return_value = mock_http_client

            items = await client.extract_items("100g rice and 2 eggs")

            assert [item.name for item in items] == ["rice", "egg"]
            assert items[0].grams_estimate == 100
            assert items[1].grams_estimate == 100
            assert items[1].confidence == "high"

            # Verify request format
            call_args = mock_http_client.post.call_args
            assert call_args[0][0] == "/responses"
            body = call_args[1]["json"]
            assert body["model"] == "grok-test"
            assert body["temperature"] == 0.2
            assert body["max_output_tokens"] == 1200
            assert body["response_format"] == {"type": "json_object"}
            assert "tools" not in body
            assert body["input"][0]["role"] == "system"
            assert "100g rice and 2 eggs" in body["input"][-1]["content"]

    @pytest.mark.asyncio
    async def test_strict_grams_prompt(self, client):
        """Test the strict-grams retry asks for positive gram estimates."""
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(return_value=_response(_output_text({"items": []})))
            mock_get_client.return_value = mock_http_client

            await client.extract_items("3 kiwis", strict_grams=True)

            body = mock_http_client.post.call_args[1]["json"]
            assert "never return 0" in body["input"][1]["content"]

    @pytest.mark.asyncio
    async def test_research_uses_web_search(self, client):
        """Test nutrient research enables the web_search tool."""
        payload = _output_text(
            {
                "nutrients": [
                    {"name": "Protein", "unit": "g", "amount_per_100g": 2.7, "confidence": 0.8},
                    {"name": "", "unit": "g", "amount_per_100g": 1},
                    {"name": "Sodium", "unit": "mg", "amount_per_100g": "n/a"},
                ]
            }
        )

        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(return_value=_response(payload))
            mock_get_client.return_value = mock_http_client

            estimates = await client.research_nutrients("white rice", ["Protein", "Sodium"])

            assert [estimate.name for estimate in estimates] == ["Protein", "Sodium"]
            assert estimates[0].amount_per_100g == 2.7
            assert estimates[1].amount_per_100g == 0.0

            body = mock_http_client.post.call_args[1]["json"]
            assert body["tools"] == [{"type": "web_search"}]
            assert json.loads(body["input"][-1]["content"])["nutrient_list"] == ["Protein", "Sodium"]

    @pytest.mark.asyncio
    async def test_image_request_format(self, client):
        """Test the vision request carries the image and the hint."""
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(
                return_value=_response(_output_text([{"name": "pizza", "grams_estimate": 250}]))
            )
            mock_get_client.return_value = mock_http_client

            items = await client.extract_image_items("https://images.test/a.jpg", hint="lunch")

            assert items[0].name == "pizza"
            content = mock_http_client.post.call_args[1]["json"]["input"][0]["content"]
            assert content[0] == {
                "type": "input_image",
                "image_url": "https://images.test/a.jpg",
                "detail": "high",
            }
            assert content[1]["type"] == "input_text"
            assert content[1]["text"].endswith("User hint: lunch")

    @pytest.mark.asyncio
    async def test_image_without_url_skips_call(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            assert await client.extract_image_items("") == []
            mock_get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_classify(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(
                return_value=_response(_output_text({"is_food": False, "reason": "Weather report"}))
            )
            mock_get_client.return_value = mock_http_client

            result = await client.classify("it is sunny")

            assert result == Classification(is_food=False, reason="Weather report")

    @pytest.mark.asyncio
    async def test_non_200_returns_none(self, client):
        """Test HTTP errors degrade to no result."""
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(return_value=_response({"error": "busy"}, 503))
            mock_get_client.return_value = mock_http_client

            assert await client.classify("toast") is None
            assert await client.extract_items("toast") == []

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self, client):
        """Test connection failures degrade to no result."""
        with patch.object(client, "_get_client") as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_get_client.return_value = mock_http_client

            assert await client.respond([{"role": "user", "content": "hi"}]) is None

    @pytest.mark.asyncio
    async def test_invalid_body_returns_none(self, client):
        with patch.object(client, "_get_client") as mock_get_client:
            bad = MagicMock(status_code=200, text="<html>")
            bad.json.side_effect = ValueError("not json")
            mock_http_client = AsyncMock()
            mock_http_client.post = AsyncMock(return_value=bad)
            mock_get_client.return_value = mock_http_client

            assert await client.extract_items("toast") == []

    @pytest.mark.asyncio
    async def test_missing_token_skips_call(self):
        """Test an unconfigured client never touches the network."""
        client = XAIEstimationClient(auth_token="")
        with patch.object(client, "_get_client") as mock_get_client:
            assert await client.extract_items("toast") == []
            assert await client.health_check() is False
            mock_get_client.assert_not_called()


class TestFactory:
    """Tests for the estimation client factory."""

    def setup_method(self):
        clear_client_cache()

    def teardown_method(self):
        clear_client_cache()

    def test_builds_xai_client_from_settings(self):
        settings = Settings(
            _env_file=None, xai_auth_token="tok", xai_model="grok-test", estimation_timeout=9
        )
        with patch("nutrilog.services.estimation.factory.get_settings", return_value=settings):
            client = get_estimation_client()

            assert isinstance(client, XAIEstimationClient)
            assert client.provider_name == "xai/grok-test"
            assert client.timeout == 9
            assert get_estimation_client() is client

    def test_unconfigured_client_still_built(self):
        with patch(
            "nutrilog.services.estimation.factory.get_settings",
            return_value=Settings(_env_file=None, xai_auth_token=""),
        ):
            assert get_estimation_client().auth_token == ""
