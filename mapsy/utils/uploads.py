from typing import Optional
from fastapi import UploadFile
from mapsy.core.config import settings
from mapsy.core.exceptions import ValidationError

async def read_image_upload(file: Optional[UploadFile], max_size: int = None) -> bytes:
    """Bytes of an ``image/*`` upload no larger than ``max_size``; rejects anything else."""
    max_size = max_size or settings.max_image_size
    if file is None:
        raise ValidationError.for_field("image", "Image file is required")

    content_type = (file.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError.for_field("image", "Only image files are allowed")

    data = await file.read(max_size + 1)
    if len(data) > max_size:
        raise ValidationError.for_field(
            "image", f"File too large. Maximum size: {max_size // (1024 * 1024)}MB"
        )
    if not data:
        raise ValidationError.for_field("image", "Image file is empty")
    return data
