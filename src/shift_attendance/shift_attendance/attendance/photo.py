from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from typing import Union

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError

_DATA_URL_PREFIX = "data:"


@dataclass(frozen=True)
class CapturedImage:
    data: bytes
    mime_type: str
    width: int
    height: int

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def _split_data_url(value: str) -> bytes:
    header, sep, payload = value.partition(",")
    if not sep or ";base64" not in header:
        raise ValidationError("Ảnh điểm danh không đúng định dạng data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Ảnh điểm danh bị lỗi mã hoá")


def decode_photo(value: Union[str, bytes]) -> CapturedImage:
    """Accept a data URL or raw image bytes and check that it really is an image."""
    if not value:
        raise ValidationError("Thiếu ảnh điểm danh")

    raw = _split_data_url(value) if isinstance(value, str) and value.startswith(_DATA_URL_PREFIX) else value
    if isinstance(raw, str):
        raise ValidationError("Ảnh điểm danh không đúng định dạng data URL")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
            fmt = (img.format or "PNG").upper()
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Dữ liệu không phải là ảnh hợp lệ")

    return CapturedImage(data=bytes(raw), mime_type=Image.MIME.get(fmt, "image/png"), width=width, height=height)
