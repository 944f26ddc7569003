"""
Generative model client: OpenAI (primary) or Hugging Face router (fallback).
When an OpenAI key is set, uses OpenAI chat completions; otherwise uses HF router.
"""

import logging

import httpx
from openai import OpenAI, OpenAIError

from inquiro.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(
        self,
        openai_api_key: str = "",
        openai_model: str = "gpt-4o-mini",
        hf_api_key: str = "",
        hf_model: str = "meta-llama/Llama-3.2-3B-Instruct",
        hf_chat_url: str = "https://router.huggingface.co/v1/chat/completions",
        timeout: float = 60.0,
    ) -> None:
        self.openai_api_key = openai_api_key
        self.openai_model = openai_model
        self.hf_api_key = hf_api_key
        self.hf_model = hf_model
        self.hf_chat_url = hf_chat_url
        self.timeout = timeout
        self._openai: OpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self.openai_api_key or self.hf_api_key)

    def _call_openai(self, prompt: str, max_tokens: int) -> str:
        """Call OpenAI chat completions. Returns generated text ("" on failure)."""
        if self._openai is None:
            self._openai = OpenAI(api_key=self.openai_api_key, timeout=self.timeout)
        try:
            response = self._openai.chat.completions.create(
                model=self.openai_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.warning("[llm:openai] request failed: %s", e)
            return ""
        msg = response.choices[0].message if response.choices else None
        if not msg or not getattr(msg, "content", None):
            return ""
        out = (msg.content or "").strip()
        logger.info("[llm:openai] OUT response_len=%d", len(out))
        return out

    def _call_hf(self, prompt: str, max_tokens: int) -> str:
        """Call Hugging Face router chat completions. Returns generated text ("" on failure)."""
        if not self.hf_api_key:
            logger.warning("[llm:hf] no HF_API_KEY")
            return ""
        headers = {"Authorization": f"Bearer {self.hf_api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.hf_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.hf_chat_url, json=payload, headers=headers)
            if response.status_code != 200:
                logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
                return ""
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[llm:hf] request failed: %s", e)
            return ""
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            msg = choices[0].get("message") or {}
            out = (msg.get("content") or "").strip()
            logger.info("[llm:hf] OUT response_len=%d", len(out))
            return out
        return ""

    def generate(self, prompt: str, max_tokens: int = 512) -> str:
        """
        Generate text. Uses OpenAI when a key is set, falling back to Hugging Face
        if OpenAI fails or returns empty.

        Raises:
            ServiceUnavailableError: no provider is configured, or every provider returned nothing.
        """
        logger.info("[llm] IN  prompt_len=%d max_tokens=%d", len(prompt), max_tokens)
        if not self.configured:
            raise ServiceUnavailableError("No language model configured: set OPENAI_API_KEY or HF_API_KEY")
        if self.openai_api_key:
            out = self._call_openai(prompt, max_tokens)
            if out:
                return out
            logger.info("[llm] OpenAI returned empty; falling back to Hugging Face")
        out = self._call_hf(prompt, max_tokens)
        if not out:
            raise ServiceUnavailableError("The language model returned an empty response")
        return out
