"""
LinguaLens - OCR
================
Text extraction from uploaded images with Tesseract.
"""

import io
import time
from typing import Optional

import pytesseract
from PIL import Image, UnidentifiedImageError

from config import get_settings
from exceptions import OCRError
from logging_config import get_logger
from metrics import ocr_attempts_total, ocr_duration_seconds, ocr_failures_total
from timeout_utils import OperationTimeoutError, run_blocking

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/bmp",
    "image/tiff",
    "image/webp",
}


def is_supported_image(content_type: Optional[str]) -> bool:
    return (content_type or "").lower() in ALLOWED_IMAGE_TYPES


def _recognize(data: bytes, languages: str) -> str:
    """Blocking Tesseract call; runs in a worker thread."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        return pytesseract.image_to_string(img, lang=languages)


async def extract_text_from_image(
    data: bytes,
    languages: Optional[str] = None,
    filename: Optional[str] = None,
    content_type: str = "image/png",
) -> str:
    """
    Run OCR over an image.

    Args:
        data: Raw image bytes
        languages: Tesseract language codes joined by '+' (default from settings)
        filename: Used in error context only
        content_type: Used as the metrics label

    Returns:
        Extracted text, stripped

    Raises:
        OCRError: Unreadable image, missing Tesseract, engine failure or timeout
    """
    settings = get_settings()
    if settings.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd
    languages = languages or settings.ocr_languages

    ocr_attempts_total.labels(content_type=content_type).inc()
    start_time = time.perf_counter()

    try:
        text = await run_blocking(
            _recognize,
            data,
            languages,
            timeout=settings.ocr_timeout_seconds,
            operation_name="ocr",
        )
    except pytesseract.TesseractNotFoundError as e:
        ocr_failures_total.labels(content_type=content_type).inc()
        logger.error("tesseract_not_installed")
        raise OCRError("Tesseract OCR is not installed", filename=filename, original_error=e) from e
    except pytesseract.TesseractError as e:
        ocr_failures_total.labels(content_type=content_type).inc()
        raise OCRError(f"Text extraction failed: {e.message}", filename=filename, original_error=e) from e
    except OperationTimeoutError as e:
        ocr_failures_total.labels(content_type=content_type).inc()
        raise OCRError("Text extraction timed out", filename=filename, original_error=e) from e
    except (UnidentifiedImageError, OSError) as e:
        # TesseractNotFoundError is an OSError too, so this comes last
        ocr_failures_total.labels(content_type=content_type).inc()
        raise OCRError("Unsupported or corrupt image", filename=filename, original_error=e) from e
    finally:
        ocr_duration_seconds.observe(time.perf_counter() - start_time)

    text = text.strip()
    logger.info("ocr_complete", filename=filename, chars=len(text), languages=languages)
    return text
