"""
xAI provider for food estimation.

Talks to the xAI responses API (``POST /responses``) for classification,
text and image extraction, and web-search backed nutrient research.
"""

import logging
from typing import Any

import httpx

from .base import EstimationClient
from .parsing import ParsedJson, parse_json_response

logger = logging.getLogger(__name__)


def extract_output_text(data: Any) -> str:
    """
    Pull the model's text out of a responses API payload.

    Prefers ``output_text``; otherwise returns the first string ``text``,
    ``json`` or ``value`` part found under ``output[].content[]``.
    """
    if not isinstance(data, dict):
        return ""
    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text
    output = data.get("output")
    for item in output if isinstance(output, list) else []:
        content = item.get("content") if isinstance(item, dict) else None
        for part in content if isinstance(content, list) else []:
            if not isinstance(part, dict):
                continue
            for key in ("text", "json", "value"):
                if isinstance(part.get(key), str):
                    return part[key]
    return ""


class XAIEstimationClient(EstimationClient):
    """Estimation backend using the xAI responses API."""

    def __init__(
        self,
        auth_token: str,
        model: str = "grok-4-1-fast",
        base_url: str = "https://api.x.ai/v1",
        timeout: float = 60.0,
        temperature: float = 0.2,
        max_output_tokens: int = 1200,
    ) -> None:
        """
        Initialize xAI provider.

        Args:
            auth_token: Bearer token; empty disables every call
            model: Model to use
            base_url: API base URL
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            max_output_tokens: Output token cap per call
        """
        self.auth_token = auth_token
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client: httpx.AsyncClient | None = None

    @property
    def provider_name(self) -> str:
        return f"xai/{self.model}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"authorization": f"Bearer {self.auth_token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_request(self, messages: list[dict[str, Any]], *, web_search: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "input": messages,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "max_output_tokens": self.max_output_tokens,
        }
        if web_search:
            body["tools"] = [{"type": "web_search"}]
        return body

    async def respond(
        self,
        messages: list[dict[str, Any]],
        *,
        web_search: bool = False,
    ) -> ParsedJson | None:
        if not self.auth_token:
            logger.warning("xAI auth token missing; skipping estimation call")
            return None

        body = self.build_request(messages, web_search=web_search)
        try:
            client = await self._get_client()
            response = await client.post("/responses", json=body)
        except httpx.HTTPError as e:
            logger.warning(f"xAI request failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"xAI error: {response.status_code} - {response.text[:500]}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"xAI returned a non-JSON body: {e}")
            return None

        content = extract_output_text(data)
        logger.debug(f"xAI content preview: {content[:200]}")
        parsed = parse_json_response(content)
        if parsed is None:
            logger.warning("xAI response contained no usable JSON")
        return parsed

    async def health_check(self) -> bool:
        """Check that a token is configured and the API answers."""
        if not self.auth_token:
            return False
        try:
            client = await self._get_client()
            response = await client.get("/models")
        except httpx.HTTPError as e:
            logger.warning(f"xAI health check failed: {e}")
            return False
        return response.status_code == 200
