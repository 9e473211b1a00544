"""AI Prompts Module"""

from docvault.ai.prompts.processing_prompts import (
    IMAGE_DESCRIPTION_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_summary_prompt,
)

__all__ = [
    "IMAGE_DESCRIPTION_PROMPT",
    "SUMMARY_SYSTEM_PROMPT",
    "build_summary_prompt",
]
