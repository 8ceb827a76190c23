# app/core/images.py
import io
from dataclasses import dataclass

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.core.config import Settings
from app.core.errors import ValidationError

OUTPUT_FORMAT = "JPEG"
OUTPUT_EXTENSION = ".jpg"
OUTPUT_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    data: bytes


def read_uploads(files: list[UploadFile] | None, max_bytes: int | None = None) -> list[ImageUpload]:
    """
    Read the uploaded parts into memory.

    With `max_bytes` set, at most one byte past the limit is read per file, so
    oversized uploads are still detectable by `process_uploads`.
    """
    uploads = []
    limit = -1 if max_bytes is None else max_bytes + 1
    for file in files or []:
        # browsers send an empty part when no file was picked
        if not file.filename:
            continue
        uploads.append(
            ImageUpload(
                filename=file.filename,
                content_type=file.content_type or "",
                data=file.file.read(limit),
            )
        )
    return uploads


def process_image(upload: ImageUpload, *, max_width: int = 1024, quality: int = 90) -> bytes:
    """
    Decode an uploaded image, shrink it to `max_width` and re-encode it as JPEG.

    Narrower images keep their size; the aspect ratio is always preserved.
    """
    if not upload.content_type.startswith("image/"):
        raise ValidationError(f"Only image files can be uploaded: {upload.filename}")
    try:
        with Image.open(io.BytesIO(upload.data)) as source:
            source.load()
            image = source
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            if image.mode != "RGB":
                image = image.convert("RGB")
            out = io.BytesIO()
            image.save(out, format=OUTPUT_FORMAT, quality=quality)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ValidationError(f"Could not read image file: {upload.filename}") from exc
    return out.getvalue()


def process_uploads(uploads: list[ImageUpload], settings: Settings) -> list[bytes]:
    """Validate and convert every upload before anything is stored."""
    if len(uploads) > settings.MAX_UPLOAD_FILES:
        raise ValidationError(f"At most {settings.MAX_UPLOAD_FILES} images can be uploaded")
    for upload in uploads:
        if len(upload.data) > settings.MAX_UPLOAD_BYTES:
            raise ValidationError(f"Image is too large: {upload.filename}")
    return [
        process_image(upload, max_width=settings.IMAGE_MAX_WIDTH, quality=settings.IMAGE_QUALITY)
        for upload in uploads
    ]
