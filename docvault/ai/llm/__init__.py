"""
LLM Module

Language Model integrations for document processing.

Currently using Google Gemini.
"""

from docvault.ai.llm.gemini_client import (
    GeminiClient,
    get_ai_client,
    is_quota_error,
)

__all__ = [
    "GeminiClient",
    "get_ai_client",
    "is_quota_error",
]
