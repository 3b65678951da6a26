from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional

from .errors import AIConfigurationError


class ChatCompletionClient:
	"""Thin async wrapper around an OpenAI-compatible ``/chat/completions`` endpoint."""

	def __init__(
		self,
		api_key: str,
		endpoint: str,
		*,
		timeout_ms: int = 30000,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		if not api_key:
			raise AIConfigurationError("AI_API_KEY is not configured")
		self.api_key = api_key
		self.base_url = endpoint.rstrip("/") + "/chat/completions"
		self._headers = {
			"Authorization": f"Bearer {api_key}",
			"Content-Type": "application/json",
		}
		self._client = httpx.AsyncClient(timeout=timeout_ms / 1000, transport=transport)

	async def create_chat_completion(
		self,
		*,
		model: str,
		messages: List[Dict[str, str]],
		temperature: float,
		max_tokens: int,
	) -> Dict[str, Any]:
		payload: Dict[str, Any] = {
			"model": model,
			"messages": messages,
			"temperature": temperature,
			"max_tokens": max_tokens,
		}
		r = await self._client.post(self.base_url, headers=self._headers, json=payload)
		r.raise_for_status()
		return r.json()

	async def aclose(self) -> None:
		await self._client.aclose()
