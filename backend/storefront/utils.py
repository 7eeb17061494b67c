import uuid
from pathlib import Path

from .errors import ValidationError

ALLOWED_TYPES = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}
CHUNK_SIZE = 1024 * 1024


def image_extension(content_type: str) -> str:
    ext = ALLOWED_TYPES.get((content_type or "").lower())
    if not ext:
        raise ValidationError("Only JPEG, PNG or WEBP images are allowed")
    return ext


def save_upload_file(fileobj, upload_dir: Path, extension: str, max_bytes: int) -> str:
    """
    Stream an uploaded file to upload_dir under a random name.
    A partially written file is removed when the size limit is hit.
    Returns the stored file name.
    """
    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{extension}"
    out_path = upload_dir / filename
    written = 0
    with open(out_path, "wb") as f:
        while True:
            chunk = fileobj.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                break
            f.write(chunk)
    if written > max_bytes:
        out_path.unlink(missing_ok=True)
        raise ValidationError(f"Image is larger than {max_bytes // (1024 * 1024)} MB")
    if written == 0:
        out_path.unlink(missing_ok=True)
        raise ValidationError("Image file is empty")
    return filename
