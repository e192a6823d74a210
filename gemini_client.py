"""
Gemini generateContent transport

Issues one POST per call and returns the reply text. Every failure mode
is raised as TransportError (timeout, network, non-200) or ParseError
(unexpected envelope); there is no retry.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from config import config
from errors import ParseError, TransportError
from http_transport import create_async_client
from schemas import GenerateContentRequest, GenerateContentResponse, GenerationConfig

logger = logging.getLogger(__name__)

ERROR_BODY_LIMIT = 500


class GeminiTransport:
    """Thin async wrapper around ``POST {base_url}/models/{model}:generateContent``"""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self.model = model
        self.base_url = (base_url or config.gemini.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.gemini.timeout
        self._owns_client = http_client is None
        self._client = http_client or create_async_client(total_timeout=self.timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _generation_config(self, max_output_tokens: int) -> GenerationConfig:
        gemini = config.gemini
        return GenerationConfig(
            temperature=gemini.temperature,
            top_k=gemini.top_k,
            top_p=gemini.top_p,
            max_output_tokens=max_output_tokens,
        )

    async def generate(self, prompt: str, max_output_tokens: Optional[int] = None) -> str:
        """Send one prompt and return the first candidate's text"""
        tokens = max_output_tokens or config.gemini.max_output_tokens
        payload = GenerateContentRequest.for_prompt(prompt, self._generation_config(tokens)).to_payload()
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

        try:
            response = await self._client.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Gemini request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request failed: {e.__class__.__name__}") from e

        if response.status_code != 200:
            raise TransportError(
                "Gemini API error",
                status_code=response.status_code,
                body=response.text[:ERROR_BODY_LIMIT],
            )

        try:
            envelope = GenerateContentResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ParseError(f"Unexpected Gemini response envelope: {e}") from e

        return envelope.first_text()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
