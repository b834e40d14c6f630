from __future__ import annotations
import json

import httpx
import pytest

from reading_quiz.errors import ConfigurationError, UpstreamError
from reading_quiz.gemini_client import GeminiClient
from reading_quiz.settings import Settings


def _reply(text_parts):
	return {"candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in text_parts]}}]}


def _client(settings, handler):
	return GeminiClient(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_ai_studio_request_shape(settings):
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["url"] = request.url
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json=_reply(['{"isCorrect": ', 'true}']))

	async with _client(settings, handler) as client:
		text = await client.generate_structured(
			[{"text": "grade this"}],
			response_schema={"type": "OBJECT"},
			model="gemini-2.5-flash",
		)

	assert text == '{"isCorrect": true}'
	assert seen["url"].path == "/v1beta/models/gemini-2.5-flash:generateContent"
	assert seen["url"].params["key"] == "test-key"
	assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "grade this"}]}]
	assert seen["body"]["generationConfig"] == {
		"responseMimeType": "application/json",
		"responseSchema": {"type": "OBJECT"},
	}


@pytest.mark.asyncio
async def test_default_model_is_the_quiz_model(settings):
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["path"] = request.url.path
		return httpx.Response(200, json=_reply(["{}"]))

	async with _client(settings, handler) as client:
		await client.generate_structured([{"text": "x"}], response_schema={})

	assert seen["path"].endswith(f"/{settings.gemini_quiz_model}:generateContent")


@pytest.mark.asyncio
async def test_vertex_sends_key_in_header():
	settings = Settings(_env_file=None, gemini_api_key="vertex-key", gemini_provider="vertex", vertex_project="demo")
	seen = {}

	def handler(request: httpx.Request) -> httpx.Response:
		seen["request"] = request
		return httpx.Response(200, json=_reply(["{}"]))

	async with _client(settings, handler) as client:
		await client.generate_structured([{"text": "x"}], response_schema={}, model="gemini-2.5-pro")

	request = seen["request"]
	assert request.headers["x-goog-api-key"] == "vertex-key"
	assert "key" not in request.url.params
	assert request.url.host == "us-central1-aiplatform.googleapis.com"
	assert "/projects/demo/" in request.url.path


@pytest.mark.asyncio
async def test_http_error_becomes_upstream_error(settings):
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(503, json={"error": {"message": "overloaded"}})

	async with _client(settings, handler) as client:
		with pytest.raises(UpstreamError, match="503"):
			await client.generate_structured([{"text": "x"}], response_schema={})


@pytest.mark.asyncio
async def test_network_error_becomes_upstream_error(settings):
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ConnectError("connection refused", request=request)

	async with _client(settings, handler) as client:
		with pytest.raises(UpstreamError, match="Could not reach Gemini"):
			await client.generate_structured([{"text": "x"}], response_schema={})


@pytest.mark.parametrize("body", [{"candidates": []}, {"promptFeedback": {"blockReason": "SAFETY"}}, {"candidates": [{"finishReason": "SAFETY"}]}])
@pytest.mark.asyncio
async def test_unexpected_envelope_becomes_upstream_error(settings, body):
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(200, json=body)

	async with _client(settings, handler) as client:
		with pytest.raises(UpstreamError, match="Unexpected Gemini response"):
			await client.generate_structured([{"text": "x"}], response_schema={})


def test_client_requires_api_key():
	with pytest.raises(ConfigurationError):
		GeminiClient(Settings(_env_file=None, gemini_api_key=None))
