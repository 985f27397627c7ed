# clients/openai_textgenerationclient.py
from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI

from ..config import Settings, get_settings
from .textgenerationclient import GenerationResult, TextGenerationClient

logger = logging.getLogger(__name__)


class OpenAITextGenerationClient(TextGenerationClient):
    """
    Works with:
      - api.openai.com (native)
      - Google Gemini OpenAI-compatible endpoint (set base_url)
      - vLLM, SGLang, LiteLLM, etc. (set base_url)
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None) -> None:
        self.settings = settings or get_settings()

        if client is not None:
            self._client = client
        else:
            self._client = OpenAI(
                api_key=self.settings.openai_api_key.get_secret_value(),
                base_url=self.settings.openai_base_url,
                timeout=self.settings.http_timeout_seconds,
                max_retries=0,
            )

        self._model = self.settings.text_model_id
        self._default_temperature = self.settings.temperature
        self._default_max_new_tokens = self.settings.max_new_tokens

    # --- Simple text generation ----------------------------------------------

    def generate(
        self,
        prompt: str,
        system_instruction: str | None = None,
        max_new_tokens: int | None = None,
        temperature: float | None = None,
    ) -> GenerationResult:
        messages: list[dict] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": self._model,
            "messages": messages,
            "temperature": self._pick_temp(temperature),
            "max_tokens": self._pick_max(max_new_tokens),
        }

        msg = self._chat_create(params)
        return GenerationResult(text=msg.strip())

    # --- Internals ------------------------------------------------------------

    def _pick_temp(self, t: Optional[float]) -> float:
        return self._default_temperature if t is None else t

    def _pick_max(self, m: Optional[int]) -> int:
        return self._default_max_new_tokens if m is None else m

    def _chat_create(self, params: dict) -> str:
        """Return the assistant text of an OpenAI-compatible chat completion."""
        resp = self._client.chat.completions.create(**params)
        choice = resp.choices[0]

        if choice.finish_reason == "length":
            usage = getattr(resp, "usage", None)
            tokens_info = f" (prompt={usage.prompt_tokens}, completion={usage.completion_tokens})" if usage else ""
            raise ValueError(
                f"Model hit token limit. Increase max_tokens (currently {params.get('max_tokens', 'unknown')}){tokens_info}"
            )

        if getattr(choice, "message", None):
            content = getattr(choice.message, "content", None)
            if content is not None:
                return content
            refusal = getattr(choice.message, "refusal", None)
            if refusal:
                raise ValueError(f"Model refused to generate: {refusal}")
        raise ValueError(f"No content in response (finish_reason={choice.finish_reason})")
