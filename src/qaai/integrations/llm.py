"""Client for an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from qaai.config import settings
from qaai.errors.exceptions import CollaboratorError

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```")


def extract_json_text(content: str) -> str:
    """Strip a fenced code block around a JSON answer, if present."""
    content = content.strip()
    match = _FENCED_JSON_RE.search(content)
    return match.group(1) if match else content


class LLMClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.timeout = timeout or settings.llm_timeout_s
        self._transport = transport

    async def generate_completion(self, messages: list[dict[str, str]], **options: Any) -> dict[str, Any]:
        """Run one chat completion and return ``{content, usage, model}``."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        body = {
            "model": options.get("model") or self.model,
            "messages": messages,
            "temperature": options.get("temperature", self.temperature),
            "max_tokens": options.get("max_tokens") or self.max_tokens,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/chat/completions", headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise CollaboratorError("llm", f"request failed: {exc}") from exc

        if response.status_code >= 300:
            raise CollaboratorError(
                "llm",
                f"API error: {response.status_code} {response.text}",
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CollaboratorError("llm", f"malformed completion response: {exc}") from exc

        usage = data.get("usage") or {}
        logger.info("LLM completion from %s (%s tokens)", data.get("model", body["model"]), usage.get("total_tokens", "?"))
        return {"content": content, "usage": usage, "model": data.get("model", body["model"])}

    async def generate_json(self, system_prompt: str, user_prompt: str, **options: Any) -> Any:
        """Ask for a JSON answer and parse it."""
        result = await self.generate_completion(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **options,
        )
        text = extract_json_text(result["content"] or "")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse LLM JSON response: %.200s", text)
            raise CollaboratorError("llm", f"Failed to parse LLM JSON response: {exc}") from exc
