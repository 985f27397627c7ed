"""Rewrites raw user prompts into generation-ready prompts."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Union

from .aiservices.textgenerationclient import TextGenerationClient
from .prompts import get_optimize_prompt_instructions, get_optimize_prompt_message
from .schemas import Layout, OptimizedPrompt

logger = logging.getLogger(__name__)


_BACKGROUND_PATTERN = re.compile(
    r"\b(fondo|background|backdrop|fond|hintergrund|sfondo)\b",
    re.IGNORECASE,
)
_COMPOSITION_PATTERN = re.compile(
    r"\b(única|unica|único|unico|single|one|solo|sola|centrada|centrado|centered|centred|centrée|zentriert)\b",
    re.IGNORECASE,
)
_RESOLUTION_PATTERN = re.compile(
    r"(high[- ]?res(olution)?|alta resoluci[oó]n|haute r[ée]solution|hochaufl[öo]send|\b[48]k\b|\bhd\b)",
    re.IGNORECASE,
)

BACKGROUND_QUALIFIER = "isolated on a plain white background"
RESOLUTION_QUALIFIER = "high resolution, suitable for print design"
_COMPOSITION_QUALIFIERS = {
    Layout.square: "single centered composition",
    Layout.tall: "single vertically centered composition",
    Layout.wide: "single horizontally centered composition",
}


def _coerce_layout(layout: Union[Layout, str, None]) -> Layout:
    if isinstance(layout, Layout):
        return layout
    try:
        return Layout(str(layout).strip().lower())
    except ValueError:
        return Layout.square


def composition_qualifier(layout: Union[Layout, str, None] = None) -> str:
    return _COMPOSITION_QUALIFIERS[_coerce_layout(layout)]


def has_background(text: str) -> bool:
    return bool(_BACKGROUND_PATTERN.search(text))


def has_single_composition(text: str) -> bool:
    return bool(_COMPOSITION_PATTERN.search(text))


def has_resolution(text: str) -> bool:
    return bool(_RESOLUTION_PATTERN.search(text))


def _append_qualifiers(text: str, qualifiers: List[str]) -> str:
    parts = [text] if text else []
    parts.extend(qualifiers)
    return ", ".join(parts)


def complete_qualifiers(
    text: str,
    layout: Union[Layout, str, None] = None,
    *,
    include_background: bool = True,
) -> str:
    """Append the qualifiers ``text`` is missing; present ones are left alone."""
    text = text.strip().rstrip(",").strip()
    missing: List[str] = []
    if include_background and not has_background(text):
        missing.append(BACKGROUND_QUALIFIER)
    if not has_single_composition(text):
        missing.append(composition_qualifier(layout))
    if not has_resolution(text):
        missing.append(RESOLUTION_QUALIFIER)
    return _append_qualifiers(text, missing)


def fallback_optimize(raw_prompt: str, layout: Union[Layout, str, None] = None) -> OptimizedPrompt:
    return OptimizedPrompt(text=complete_qualifiers(raw_prompt, layout), used_fallback=True)


class PromptOptimizer:
    """Turns a raw prompt into a print-ready prompt.

    The text generation client is optional. Without one, or whenever it fails,
    the deterministic keyword-based rewrite is used instead, so ``optimize``
    never raises.
    """

    def __init__(self, text_client: Optional[TextGenerationClient] = None) -> None:
        self._text_client = text_client

    def optimize(self, raw_prompt: str, layout: Union[Layout, str, None] = None) -> OptimizedPrompt:
        if self._text_client is None:
            return fallback_optimize(raw_prompt, layout)

        try:
            text = self._rewrite_with_model(raw_prompt, layout)
        except Exception as exc:
            logger.warning("Prompt optimization failed, using fallback: %s", exc)
            return fallback_optimize(raw_prompt, layout)

        # The model decides about the background; the two remaining
        # qualifiers must be present on every optimized prompt.
        text = complete_qualifiers(text, layout, include_background=False)
        return OptimizedPrompt(text=text, used_fallback=False)

    def _rewrite_with_model(self, raw_prompt: str, layout: Union[Layout, str, None]) -> str:
        layout_value = _coerce_layout(layout).value if layout else None
        result = self._text_client.generate(
            get_optimize_prompt_message(raw_prompt, layout_value),
            system_instruction=get_optimize_prompt_instructions(),
        )
        text = (result.text or "").strip().strip('"').strip()
        if not text:
            raise ValueError("empty completion")
        return text
