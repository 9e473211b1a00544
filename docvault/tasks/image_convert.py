"""
Image Convert Task

Re-encodes an image as PNG, JPEG or WebP and stores the result as a
new file next to the original. The source file is never modified.
"""

import io
import asyncio
import logging

from PIL import Image, UnidentifiedImageError

from docvault.jobs.errors import UnprocessableDocumentError
from docvault.schemas.processing import (
    ImageConvertPayload,
    ImageFormat,
    ProcessingJobResult,
)
from docvault.tasks.context import TaskContext
from docvault.utils.file_utils import replace_extension

logger = logging.getLogger(__name__)

# ImageFormat → (Pillow format name, MIME type)
FORMAT_SPECS: dict[ImageFormat, tuple[str, str]] = {
    ImageFormat.PNG: ("PNG", "image/png"),
    ImageFormat.JPEG: ("JPEG", "image/jpeg"),
    ImageFormat.WEBP: ("WEBP", "image/webp"),
}

SUPPORTED_MODES: dict[ImageFormat, set[str]] = {
    ImageFormat.PNG: {"1", "L", "LA", "P", "RGB", "RGBA", "I"},
    ImageFormat.JPEG: {"L", "RGB", "CMYK"},
    ImageFormat.WEBP: {"RGB", "RGBA"},
}


def _prepare_mode(img: Image.Image, target: ImageFormat) -> Image.Image:
    """Convert to a pixel mode the target encoder accepts."""
    if img.mode in SUPPORTED_MODES[target]:
        return img

    # JPEG has no alpha channel: RGBA and palette images are flattened
    if target == ImageFormat.JPEG:
        return img.convert("RGB")

    has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def convert_image(content: bytes, target: ImageFormat, quality: int = 80) -> bytes:
    """
    Re-encode image bytes (blocking, run in a thread).

    Quality only applies to JPEG and WebP.

    Raises:
        UnprocessableDocumentError: If Pillow can't read the image
    """
    try:
        img = Image.open(io.BytesIO(content))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise UnprocessableDocumentError(f"Cannot read image: {e}")

    pil_format, _ = FORMAT_SPECS[target]
    save_kwargs = {}
    if target in (ImageFormat.JPEG, ImageFormat.WEBP):
        save_kwargs["quality"] = quality

    with img:
        converted = _prepare_mode(img, target)
        buffer = io.BytesIO()
        converted.save(buffer, format=pil_format, **save_kwargs)

    return buffer.getvalue()


async def convert_image_file(
    payload: ImageConvertPayload,
    ctx: TaskContext,
) -> ProcessingJobResult:
    """Convert an image to a different format (PNG, JPEG, or WebP)."""
    target = ImageFormat(payload.target_format)
    _, mime_type = FORMAT_SPECS[target]

    await ctx.report(20)
    content = await ctx.storage.get(payload.storage_key)

    await ctx.report(40)
    converted = await asyncio.to_thread(convert_image, content, target, payload.quality)

    await ctx.report(70)
    new_name = replace_extension(payload.filename, target.value)
    storage_key = ctx.storage.generate_key(payload.user_id, new_name)
    await ctx.storage.save(converted, storage_key, content_type=mime_type)

    await ctx.report(90)
    file_id = await ctx.repository.insert_file(
        user_id=payload.user_id,
        folder_id=payload.folder_id,
        name=new_name,
        storage_key=storage_key,
        mime_type=mime_type,
        size_bytes=len(converted),
    )

    logger.info(f"Converted image to {target.value}: {new_name}")

    return ProcessingJobResult(
        success=True,
        message=f"Converted to {target.value.upper()}",
        output_file_ids=[file_id],
    )
