"""Raster codec: data-URL encoding, decoding to RGBA buffers and content hashing."""

from __future__ import annotations

import base64
import binascii
import hashlib
import io
import re
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image, UnidentifiedImageError

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[\w-]+=[^;,]*)*)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

_MIME_BY_FORMAT = {"png": "image/png", "jpeg": "image/jpeg", "jpg": "image/jpeg"}

# Bits per pixel by Pillow mode
_MODE_DEPTH = {"1": 1, "L": 8, "P": 8, "LA": 16, "RGB": 24, "YCbCr": 24, "RGBA": 32, "CMYK": 32, "I;16": 16}


class RasterDecodeError(ValueError):
    """Raised when raster data cannot be parsed into pixels."""


def mime_for_format(fmt: str) -> str:
    return _MIME_BY_FORMAT.get(fmt.lower(), "image/png")


def encode_data_url(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a data URL into (mime type, raw bytes)."""
    match = _DATA_URL.match(url.strip()) if url else None
    if match is None:
        raise RasterDecodeError("raster data is not a data URL")
    mime = match.group("mime") or "text/plain"
    payload = match.group("data")
    if match.group("b64"):
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RasterDecodeError(f"invalid base64 payload: {e}") from e
    else:
        raw = unquote_to_bytes(payload)
    return mime, raw


def open_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise RasterDecodeError(f"cannot decode image: {e}") from e
    return img


def raster_info(data: bytes) -> tuple[int, int, int]:
    """Return (width, height, colour depth in bits) of encoded raster bytes."""
    img = open_image(data)
    return img.width, img.height, _MODE_DEPTH.get(img.mode, 24)


def load_rgba(data_url: str) -> np.ndarray:
    """Decode a data URL into a read-only (height, width, 4) uint8 array."""
    mime, raw = decode_data_url(data_url)
    if not mime.startswith("image/"):
        raise RasterDecodeError(f"unsupported mime type: {mime}")
    img = open_image(raw)
    arr = np.asarray(img.convert("RGBA"), dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise RasterDecodeError("image has no pixels")
    arr = np.ascontiguousarray(arr)
    arr.setflags(write=False)
    return arr


def image_to_bytes(img: Image.Image, fmt: str = "png", quality: int = 90) -> bytes:
    buf = io.BytesIO()
    if fmt.lower() in ("jpeg", "jpg"):
        img.convert("RGB").save(buf, format="JPEG", quality=quality)
    else:
        img.save(buf, format="PNG")
    return buf.getvalue()


def rgba_to_data_url(arr: np.ndarray, fmt: str = "png") -> str:
    img = Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8))
    return encode_data_url(image_to_bytes(img, fmt), mime_for_format(fmt))


def content_hash(data: bytes) -> str:
    """Deterministic identity fingerprint of raster bytes (not for integrity)."""
    return hashlib.sha256(data).hexdigest()
