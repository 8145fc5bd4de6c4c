"""Image uploads: validation, sizing and image-node construction."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .document import Image
from .resize import MAX_SIZE, MIN_SIZE, clamp

ALLOWED_IMAGE_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}
MAX_UPLOAD_BYTES = 50 * 1024 * 1024
STORAGE_PREFIX = "modu/public"


@dataclass
class ImageInfo:
    path: Path
    format: str
    mime_type: str
    width: int
    height: int
    size: int


def inspect_image(path: Path, max_bytes: int = MAX_UPLOAD_BYTES) -> ImageInfo:
    """Read format and pixel size, rejecting anything an upload would reject."""
    try:
        from PIL import Image as PILImage  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"Pillow not available: {exc}") from exc

    if not path.exists() or not path.is_file():
        raise ValueError(f"Image file not found: {path}")
    size = path.stat().st_size
    if size > max_bytes:
        raise ValueError(f"Image exceeds {max_bytes // (1024 * 1024)}MB limit: {path} ({size} bytes)")

    try:
        with PILImage.open(path) as img:
            fmt = (img.format or "").upper()
            width, height = img.size
    except Exception as exc:
        raise ValueError(f"Unable to read image {path}: {exc}") from exc

    mime_type = ALLOWED_IMAGE_FORMATS.get(fmt)
    if mime_type is None:
        allowed = ", ".join(sorted(ALLOWED_IMAGE_FORMATS))
        raise ValueError(f"Unsupported image format {fmt or 'unknown'} for {path} (allowed: {allowed})")

    return ImageInfo(path=path, format=fmt, mime_type=mime_type, width=width, height=height, size=size)


def fit_image_size(width: int, height: int, low: int = MIN_SIZE, high: int = MAX_SIZE) -> Tuple[int, int]:
    """Scale ``width x height`` into ``[low, high]`` keeping the ratio when it fits."""
    if width <= 0 or height <= 0:
        return low, low
    scale = 1.0
    if max(width, height) > high:
        scale = high / max(width, height)
    elif min(width, height) < low:
        scale = min(low / min(width, height), high / max(width, height))
    return (
        int(clamp(round(width * scale), low, high)),
        int(clamp(round(height * scale), low, high)),
    )


def build_image_node(src: str, info: ImageInfo, alt: Optional[str] = None) -> Image:
    width, height = fit_image_size(info.width, info.height)
    return Image(
        attrs={
            "src": src,
            "alt": alt if alt is not None else info.path.stem,
            "title": None,
            "width": width,
            "height": height,
        }
    )


def storage_path_for(filename: str, timestamp_ms: int, token: Optional[str] = None) -> str:
    """Object key for an uploaded image: ``modu/public/<ms>-<token>.<ext>``."""
    ext = filename.rsplit(".", 1)[-1]
    token = token or secrets.token_hex(6)
    return f"{STORAGE_PREFIX}/{timestamp_ms}-{token}.{ext}"
