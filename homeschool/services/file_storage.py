# homeschool/services/file_storage.py
"""Local disk storage for uploaded files, served under ``/uploads``."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4
import logging
import os
import shutil

from fastapi import UploadFile

from ..core.config import settings
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

DOCUMENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-powerpoint": ".ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
}

RECEIPT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}

CHUNK_SIZE = 64 * 1024


@dataclass
class StoredFile:
    file_name: str
    file_url: str
    content_type: str
    file_size: int


def upload_kinds():
    return {
        "profile_images": (IMAGE_TYPES, settings.max_profile_image_bytes),
        "receipts": (RECEIPT_TYPES, settings.max_receipt_bytes),
        "attachments": (DOCUMENT_TYPES, settings.max_attachment_bytes),
        "report_cards": ({"application/pdf": ".pdf"}, None),
    }


def _relative_path(kind: str, teacher_id: UUID, extension: str) -> str:
    return f"{kind}/{teacher_id}/{uuid4().hex}{extension}"


def url_for(relative: str) -> str:
    return f"{settings.upload_url_prefix.rstrip('/')}/{relative}"


def path_for_url(url: Optional[str]) -> Optional[Path]:
    """Map a stored file's URL back to its location on disk"""
    prefix = settings.upload_url_prefix.rstrip("/") + "/"
    if not url or not url.startswith(prefix):
        return None
    relative = url[len(prefix):]
    root = Path(settings.upload_dir).resolve()
    path = (root / relative).resolve()
    if root not in path.parents:
        return None
    return path


async def save_upload(upload: UploadFile, kind: str, teacher_id: UUID) -> StoredFile:
    """Validate type and size, then write the upload to disk"""
    allowed, max_bytes = upload_kinds()[kind]
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in allowed:
        raise ValidationError(
            f"Unsupported file type: {content_type or 'unknown'}",
            field="file",
            details={"file": f"Allowed types: {', '.join(sorted(allowed))}"},
        )

    relative = _relative_path(kind, teacher_id, allowed[content_type])
    target = Path(settings.upload_dir) / relative
    target.parent.mkdir(parents=True, exist_ok=True)

    size = 0
    try:
        with open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if max_bytes is not None and size > max_bytes:
                    raise ValidationError(
                        f"File exceeds the maximum size of {max_bytes // (1024 * 1024)}MB",
                        field="file",
                    )
                out.write(chunk)
    except ValidationError:
        target.unlink(missing_ok=True)
        raise

    if size == 0:
        target.unlink(missing_ok=True)
        raise ValidationError("File is empty", field="file")

    file_name = os.path.basename(upload.filename or "") or target.name
    logger.info(f"Stored {kind} upload {relative} ({size} bytes)")
    return StoredFile(file_name=file_name[:255], file_url=url_for(relative), content_type=content_type, file_size=size)


def save_bytes(data: bytes, kind: str, teacher_id: UUID, content_type: str = "application/pdf") -> StoredFile:
    allowed, _ = upload_kinds()[kind]
    extension = allowed[content_type]
    relative = _relative_path(kind, teacher_id, extension)
    target = Path(settings.upload_dir) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return StoredFile(file_name=target.name, file_url=url_for(relative), content_type=content_type, file_size=len(data))


def copy_file(url: str, kind: str, teacher_id: UUID) -> Optional[str]:
    """Duplicate a stored file for another owner; returns the new URL"""
    source = path_for_url(url)
    if source is None or not source.exists():
        return None
    relative = _relative_path(kind, teacher_id, source.suffix)
    target = Path(settings.upload_dir) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return url_for(relative)


def delete_file(url: Optional[str]):
    path = path_for_url(url)
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove stored file {path}: {e}")
