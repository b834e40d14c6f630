from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import UpstreamError
from .settings import Settings

logger = logging.getLogger(__name__)


class GeminiClient:
	def __init__(
		self,
		settings: Settings,
		*,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = settings.require_api_key()
		self.default_model = settings.gemini_quiz_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or "https://generativelanguage.googleapis.com/v1beta/models"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	def endpoint(self, model: Optional[str] = None) -> str:
		return f"{self.base_url}/{model or self.default_model}:generateContent"

	async def generate_structured(
		self,
		parts: List[Dict[str, Any]],
		*,
		response_schema: Dict[str, Any],
		model: Optional[str] = None,
		role: str = "user",
	) -> str:
		"""Request a JSON answer conforming to ``response_schema`` and return the raw text."""
		payload: Dict[str, Any] = {
			"contents": [{"role": role, "parts": parts}],
			"generationConfig": {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			},
		}
		return await self._post_payload(payload, model=model)

	async def _post_payload(self, payload: Dict[str, Any], *, model: Optional[str] = None) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		url = self.endpoint(model)
		try:
			r = await self._client.post(url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.warning("Gemini returned HTTP %s for model %s", http_err.response.status_code, model or self.default_model)
			raise UpstreamError(f"Gemini request failed with status {http_err.response.status_code}") from http_err
		except httpx.RequestError as net_err:
			logger.warning("Gemini request failed: %s", net_err)
			raise UpstreamError(f"Could not reach Gemini: {net_err}") from net_err
		try:
			data = r.json()
			parts = data["candidates"][0]["content"].get("parts") or []
		except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
			raise UpstreamError(f"Unexpected Gemini response: {r.text[:200]}") from e
		return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))

	async def aclose(self) -> None:
		await self._client.aclose()

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()
