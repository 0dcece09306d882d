import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps


logger = logging.getLogger(__name__)

COMPRESSIBLE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
}

# (min input bytes, max dimension, quality), checked top to bottom.
COMPRESSION_STEPS = (
    (5 * 1024 * 1024, 1280, 60),
    (2 * 1024 * 1024, 1600, 70),
    (500 * 1024, 1920, 80),
    (0, 2048, 85),
)


@dataclass(frozen=True)
class ProcessedImage:
    data: bytes
    mime_type: str
    extension: str
    compressed: bool


def compression_settings(size: int):
    """Return ``(max_dimension, quality)`` for an input of ``size`` bytes."""
    for min_bytes, max_dimension, quality in COMPRESSION_STEPS:
        if size > min_bytes:
            return max_dimension, quality
    return COMPRESSION_STEPS[-1][1], COMPRESSION_STEPS[-1][2]


def _original(data: bytes, mime_type: str, extension: str) -> ProcessedImage:
    return ProcessedImage(data=data, mime_type=mime_type, extension=extension, compressed=False)


def _encode(image: Image.Image, as_png: bool, quality: int) -> bytes:
    buffer = io.BytesIO()
    if as_png:
        image.save(buffer, format="PNG", optimize=True)
    else:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(buffer, format="JPEG", quality=quality, optimize=True, progressive=True)
    return buffer.getvalue()


def compress_image(data: bytes, mime_type: str, extension: str) -> ProcessedImage:
    """Shrink a still image before upload.

    GIFs and animated images are returned untouched. PNG stays PNG, every
    other still format is re-encoded as JPEG. The re-encoded bytes are only
    kept when smaller than the input. Any failure falls back to the original
    bytes so a codec problem never blocks the upload.
    """
    if mime_type not in COMPRESSIBLE_MIME_TYPES:
        return _original(data, mime_type, extension)

    try:
        with Image.open(io.BytesIO(data)) as source:
            if getattr(source, "is_animated", False):
                return _original(data, mime_type, extension)

            max_dimension, quality = compression_settings(len(data))
            image = ImageOps.exif_transpose(source)
            image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

            as_png = mime_type == "image/png"
            encoded = _encode(image, as_png, quality)
    except Exception:
        logger.warning(
            "Image compression failed for %s, uploading original",
            mime_type,
            exc_info=True,
        )
        return _original(data, mime_type, extension)

    if as_png:
        target_mime, target_extension = "image/png", "png"
    else:
        target_mime, target_extension = "image/jpeg", "jpg"

    if len(encoded) >= len(data):
        return _original(data, mime_type, extension)

    logger.debug(
        "Compressed %s from %d to %d bytes (max %dpx, q=%d)",
        mime_type, len(data), len(encoded), max_dimension, quality,
    )
    return ProcessedImage(
        data=encoded,
        mime_type=target_mime,
        extension=target_extension,
        compressed=True,
    )
