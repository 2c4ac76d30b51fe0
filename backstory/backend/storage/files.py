import io
import os

import requests
from PIL import Image, UnidentifiedImageError

from backstory.common.paths import media_dir

MEDIA_DIR = str(media_dir())

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_STORAGE_BUCKET = os.getenv("SUPABASE_STORAGE_BUCKET", "")
USE_SUPABASE_STORAGE = bool(
    SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY and SUPABASE_STORAGE_BUCKET
)

# Pillow format name -> (file extension, MIME type)
IMAGE_FORMATS = {
    "PNG": ("png", "image/png"),
    "JPEG": ("jpg", "image/jpeg"),
    "GIF": ("gif", "image/gif"),
    "WEBP": ("webp", "image/webp"),
}


def inspect_image(data: bytes) -> tuple:
    """
    Return (extension, mime_type) for uploaded image bytes.
    Raises ValueError when the bytes are empty or not a supported image.
    """
    if not data:
        raise ValueError("Please upload a valid image.")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = (img.format or "").upper()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Please upload a valid image.") from exc
    if fmt not in IMAGE_FORMATS:
        raise ValueError(f"Unsupported image format: {fmt or 'unknown'}.")
    return IMAGE_FORMATS[fmt]


def _supabase_upload(path: str, data: bytes, content_type: str) -> str:
    url = f"{SUPABASE_URL}/storage/v1/object/{SUPABASE_STORAGE_BUCKET}/{path}"
    headers = {
        "Authorization": f"Bearer {SUPABASE_SERVICE_ROLE_KEY}",
        "apikey": SUPABASE_SERVICE_ROLE_KEY,
        "Content-Type": content_type,
        "x-upsert": "true",
    }
    resp = requests.post(url, headers=headers, data=data, timeout=60)
    if resp.status_code not in (200, 201):
        raise RuntimeError(f"Supabase upload failed: {resp.status_code} {resp.text}")
    return f"{SUPABASE_URL}/storage/v1/object/public/{SUPABASE_STORAGE_BUCKET}/{path}"


def ensure_media_dir() -> None:
    if USE_SUPABASE_STORAGE:
        return
    os.makedirs(MEDIA_DIR, exist_ok=True)


def save_image_bytes(image_id: str, data: bytes, ext: str = "png", content_type: str = "image/png") -> str:
    filename = f"{image_id}.{ext}"
    if USE_SUPABASE_STORAGE:
        return _supabase_upload(f"uploads/{filename}", data, content_type)
    os.makedirs(MEDIA_DIR, exist_ok=True)
    path = os.path.join(MEDIA_DIR, filename)
    with open(path, "wb") as f:
        f.write(data)
    return f"/media/{filename}"
