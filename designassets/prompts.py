from textwrap import dedent
from typing import Optional


def get_optimize_prompt_instructions() -> str:
    return dedent(
        """\
        You rewrite short ideas into image generation prompts for designs printed on garments.

        RULES:
        - Answer in the same language as the user's idea
        - Keep the original subject and intent
        - Ask for one single centered composition unless the idea already describes the composition
        - Ask for a high resolution result unless the idea already mentions resolution
        - Describe a background only if the idea mentions none; then use a plain white background
        - Phrase everything positively; describe what should appear, never what should be left out
        - Keep the prompt under 400 characters
        - Output ONLY the rewritten prompt, without quotes, labels or explanations"""
    )


def get_optimize_prompt_message(raw_prompt: str, layout: Optional[str] = None) -> str:
    layout_hint = f"\nLayout of the print area: {layout}" if layout else ""
    return dedent(
        f"""\
        <<<IDEA>>>
        {raw_prompt.strip()}
        <<<END_IDEA>>>{layout_hint}

        Rewritten prompt:"""
    )
