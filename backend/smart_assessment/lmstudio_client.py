from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings


class LMStudioError(RuntimeError):
	pass


class LMStudioClient:
	"""Async client for LM Studio's OpenAI-compatible chat completions endpoint."""

	def __init__(
		self,
		api_url: Optional[str] = None,
		*,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_url = api_url or settings.lm_studio_api_url
		self.model = model or settings.lm_studio_model
		self.timeout = timeout if timeout is not None else settings.lm_studio_timeout
		self._headers = {"Content-Type": "application/json"}
		self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

	async def complete(
		self,
		messages: List[Dict[str, str]],
		*,
		temperature: float = 0.7,
		max_tokens: int = 500,
		timeout: Optional[float] = None,
	) -> Dict[str, Any]:
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": messages,
			"temperature": temperature,
			"max_tokens": max_tokens,
		}
		r = await self._client.post(
			self.api_url,
			headers=self._headers,
			json=payload,
			timeout=timeout if timeout is not None else self.timeout,
		)
		r.raise_for_status()
		try:
			return r.json()
		except ValueError as err:
			raise LMStudioError(f"Unexpected LM Studio response: {r.text}") from err

	async def chat(
		self,
		messages: List[Dict[str, str]],
		*,
		temperature: float = 0.7,
		max_tokens: int = 500,
		timeout: Optional[float] = None,
	) -> str:
		data = await self.complete(messages, temperature=temperature, max_tokens=max_tokens, timeout=timeout)
		content = response_content(data)
		if not content:
			raise LMStudioError("No response from AI model")
		return content

	async def aclose(self) -> None:
		await self._client.aclose()


def response_content(data: Any) -> Optional[str]:
	try:
		content = data["choices"][0]["message"]["content"]
	except (KeyError, IndexError, TypeError):
		return None
	return content if isinstance(content, str) and content else None
