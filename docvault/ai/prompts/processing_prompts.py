"""
Processing Prompts

Prompts for the OCR pipeline: describing images and summarizing
extracted document text.
"""

IMAGE_DESCRIPTION_PROMPT = """Describe what you see in this image. Focus on:
- The main subject and visual elements
- Colors, setting, and composition
- Notable details or context

Provide a clear, descriptive summary of the visual content in 2-4 sentences. If text is present, please transcribe the text."""


SUMMARY_SYSTEM_PROMPT = (
    "You are a document summarization assistant. Create concise, "
    "well-structured summaries that capture the key points, main ideas, "
    "and important details from the provided text."
)


def build_summary_prompt(text: str) -> str:
    """
    Build the user prompt for summarizing a document.

    Args:
        text: Extracted document text (may contain page break markers)
    """
    return f"Please summarize the following document:\n\n{text}"
