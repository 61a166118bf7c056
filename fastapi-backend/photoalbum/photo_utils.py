"""
Photo utilities for upload validation and metadata extraction.

Uses Pillow (PIL) to read image headers.
"""

from PIL import Image
import io
import re
import uuid
from pathlib import PurePath
from typing import Optional, Tuple
import logging

logger = logging.getLogger("photoalbum.photo_utils")

MAX_ORIGINAL_NAME_LENGTH = 255
_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def is_allowed_mime_type(mime_type: Optional[str], allowed: frozenset) -> bool:
    return bool(mime_type) and mime_type.lower() in allowed


def original_extension(file_name: str) -> str:
    """Return the upload's extension (".jpg") or "" when it has no usable one."""
    # Browsers on Windows may send a full path.
    suffix = PurePath(file_name.replace("\\", "/")).suffix
    return suffix if _EXTENSION_RE.match(suffix) else ""


def generate_stored_key(file_name: str) -> str:
    """Random 128-bit name with the original extension preserved."""
    return f"{uuid.uuid4()}{original_extension(file_name)}"


def clean_original_name(file_name: Optional[str]) -> str:
    name = (file_name or "").strip() or "upload"
    return name[:MAX_ORIGINAL_NAME_LENGTH]


def probe_dimensions(file_data: bytes) -> Tuple[Optional[int], Optional[int]]:
    """
    Get (width, height) without decoding the pixel data.

    Returns (None, None) when the bytes are not an image Pillow understands;
    callers treat that as "unknown", never as an error.
    """
    try:
        with Image.open(io.BytesIO(file_data)) as img:
            width, height = img.size
    except Exception as exc:  # any decode failure means "dimensions unknown"
        logger.debug("Could not extract image dimensions: %s", exc)
        return None, None
    return width, height


__all__ = [
    "is_allowed_mime_type",
    "original_extension",
    "generate_stored_key",
    "clean_original_name",
    "probe_dimensions",
]
