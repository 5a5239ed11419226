from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import PurePath


class DeliveryMode(str, enum.Enum):
    IMAGE = "image"
    PDF = "pdf"
    DOWNLOAD = "download"


IMAGE_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}

DOWNLOAD_TYPES: dict[str, str] = {
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".txt": "text/plain",
    ".csv": "text/csv",
}

PDF_TYPE = "application/pdf"

ALLOWED_EXTENSIONS = frozenset(IMAGE_TYPES) | frozenset(DOWNLOAD_TYPES) | {".pdf"}


@dataclass(frozen=True)
class Delivery:
    mode: DeliveryMode
    media_type: str

    @property
    def disposition(self) -> str:
        return "attachment" if self.mode is DeliveryMode.DOWNLOAD else "inline"


def extension_of(filename: str) -> str:
    return PurePath(filename or "").suffix.lower()


def resolve_delivery(filename: str) -> Delivery:
    ext = extension_of(filename)
    if ext in IMAGE_TYPES:
        return Delivery(DeliveryMode.IMAGE, IMAGE_TYPES[ext])
    if ext == ".pdf":
        return Delivery(DeliveryMode.PDF, PDF_TYPE)
    return Delivery(DeliveryMode.DOWNLOAD, DOWNLOAD_TYPES.get(ext, "application/octet-stream"))
