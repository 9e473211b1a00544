"""
File Utilities

Helper functions for file naming, storage keys, and content sniffing.
Always assume user input is malicious!
"""

import os
import re
import logging
from typing import Optional

import filetype

logger = logging.getLogger(__name__)

MAX_STORAGE_NAME_LENGTH = 255

# Image MIME types we pass through to the vision model as-is.
# Anything else is sent as PNG.
VISION_IMAGE_TYPES = {"image/jpeg", "image/gif", "image/webp"}


# ============================================================
# MIME TYPE DETECTION
# ============================================================

def detect_mime_type(file_content: bytes) -> Optional[str]:
    """
    Detect the actual MIME type of a file by reading its magic bytes.

    Uses the pure-Python ``filetype`` library so no system
    dependencies (libmagic) are needed on cloud platforms.

    Returns:
        MIME type string, or None if the content isn't recognised
    """
    kind = filetype.guess(file_content)

    if kind is not None:
        logger.debug(f"Detected MIME type: {kind.mime}")
        return kind.mime

    return None


def detect_image_mime(file_content: bytes) -> str:
    """
    Pick the MIME type to declare when sending an image to the AI.

    Example:
        detect_image_mime(b"\\xff\\xd8\\xff...")  # "image/jpeg"
        detect_image_mime(b"BM...")            # "image/png"
    """
    mime = detect_mime_type(file_content)
    if mime in VISION_IMAGE_TYPES:
        return mime
    return "image/png"


def is_image_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")


# ============================================================
# FILENAME HANDLING
# ============================================================

def sanitize_storage_name(filename: str) -> str:
    """
    Make a filename safe for use inside a storage key.

    Every character outside [a-zA-Z0-9._-] becomes an underscore,
    runs of underscores collapse to one, and the result is cut
    to 255 characters.

    Example:
        sanitize_storage_name("Page 1.pdf")        # "Page_1.pdf"
        sanitize_storage_name("my  résumé!!.png")  # "my_r_sum_.png"
    """
    name = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
    name = re.sub(r"_+", "_", name)
    return name[:MAX_STORAGE_NAME_LENGTH]


def get_base_name(filename: str) -> str:
    """
    Filename without its last extension.

    Example:
        get_base_name("report.final.pdf")  # "report.final"
        get_base_name("noextension")       # "noextension"
    """
    name, _ = os.path.splitext(filename)
    return name


def replace_extension(filename: str, extension: str) -> str:
    """
    Example:
        replace_extension("photo.jpeg", "png")  # "photo.png"
    """
    return f"{get_base_name(filename)}.{extension}"


def is_pdf_filename(filename: str) -> bool:
    """Case-insensitive ".pdf" suffix check."""
    return filename.lower().endswith(".pdf")
