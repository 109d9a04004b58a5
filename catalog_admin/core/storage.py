"""
File host clients for product images.

Two backends share one contract: ``upload(content, filename, content_type)``
returns the public URL of the stored file or raises ``UploadError``.

- HttpUploadClient: multipart POST to a fixed endpoint answering
  ``{"success": bool, "url": str, "message": str}``.
- GcsUploadClient: compresses to WebP (max 1600px, quality 80) and uploads to
  Google Cloud Storage, returning the public object URL.
"""

import asyncio
import io
import logging
import re
import time
import uuid
from typing import Optional, Protocol

import httpx
from google.api_core import exceptions
from google.cloud import storage
from PIL import Image, UnidentifiedImageError

from catalog_admin.core.config import Config
from catalog_admin.core.exceptions import UploadError

logger = logging.getLogger(__name__)

SAFE_RE = re.compile(r"[^A-Za-z0-9_\-\.]+")

# Slight compression: max dimension 1600px, WebP quality 80
MAX_PIXEL_DIMENSION = 1600
WEBP_QUALITY = 80


def sanitize_filename(filename: str) -> str:
    """Replace anything outside [A-Za-z0-9_.-] with underscores."""
    safe = SAFE_RE.sub("_", (filename or "").strip())
    return safe or "image"


def generate_upload_filename(original: str) -> str:
    """
    Build a collision resistant name for the file host.
    Usage: generate_upload_filename("red dress.jpg") -> "1730000000000_1a2b3c4d_red_dress.jpg"
    """
    timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}_{uuid.uuid4().hex[:8]}_{sanitize_filename(original)}"


class FileUploadClient(Protocol):
    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        ...


class HttpUploadClient:
    """
    Upload client for an HTTP file host.

    Sends one file plus a ``filename`` form field per request. No timeout is
    imposed unless one is given: the request runs until the transport resolves.
    """

    def __init__(
        self,
        endpoint: str,
        field_name: str = "file",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.field_name = field_name
        self.timeout = timeout
        self._transport = transport

    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        if not self.endpoint:
            raise UploadError("UPLOAD_ENDPOINT must be set for the http upload backend.")

        files = {self.field_name: (filename, content, content_type)}
        data = {"filename": filename}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, files=files, data=data)
        except httpx.HTTPError as e:
            raise UploadError(f"File host unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= 400 or not payload.get("success"):
            message = payload.get("message") or f"HTTP {response.status_code}"
            raise UploadError(f"File host rejected {filename}: {message}")

        url = payload.get("url")
        if not url:
            raise UploadError(f"File host returned no url for {filename}")
        return url


def _compress_to_webp(image_bytes: bytes) -> bytes:
    """Resize (max 1600px) and convert to WebP at quality 80."""
    img = Image.open(io.BytesIO(image_bytes))
    if img.mode in ("RGBA", "P"):
        img = img.convert("RGBA")
    else:
        img = img.convert("RGB")

    w, h = img.size
    if w > MAX_PIXEL_DIMENSION or h > MAX_PIXEL_DIMENSION:
        if w >= h:
            new_w = MAX_PIXEL_DIMENSION
            new_h = int(h * MAX_PIXEL_DIMENSION / w)
        else:
            new_h = MAX_PIXEL_DIMENSION
            new_w = int(w * MAX_PIXEL_DIMENSION / h)
        img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    save_kw: dict = {"format": "WEBP", "quality": WEBP_QUALITY}
    if img.mode == "RGBA":
        save_kw["lossless"] = False
    img.save(out, **save_kw)
    return out.getvalue()


class GcsUploadClient:
    """
    Upload client backed by a Google Cloud Storage bucket.
    Public read is expected to be granted via bucket IAM, not object ACLs.
    """

    def __init__(
        self,
        bucket_name: str,
        project_id: str = "",
        prefix: str = "product-images/",
        client: Optional[storage.Client] = None,
    ):
        self.bucket_name = bucket_name
        self.project_id = project_id
        prefix = (prefix or "").strip("/")
        self.prefix = f"{prefix}/" if prefix else ""
        self._client = client

    def _get_client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self.project_id or None)
        return self._client

    def _upload_sync(self, content: bytes, filename: str) -> str:
        if not self.bucket_name:
            raise UploadError("GCP_BUCKET_NAME must be set for the gcs upload backend.")

        try:
            webp_bytes = _compress_to_webp(content)
        except (UnidentifiedImageError, OSError) as e:
            raise UploadError(f"{filename} is not a readable image: {e}") from e

        base_name = filename.rsplit(".", 1)[0] or "image"
        blob_path = f"{self.prefix}{base_name}.webp"

        bucket = self._get_client().bucket(self.bucket_name)
        blob = bucket.blob(blob_path)
        try:
            blob.upload_from_string(webp_bytes, content_type="image/webp")
        except exceptions.GoogleAPIError as e:
            raise UploadError(f"GCS upload failed for {filename}: {e}") from e

        return f"https://storage.googleapis.com/{self.bucket_name}/{blob_path}"

    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        # google-cloud-storage is blocking
        return await asyncio.to_thread(self._upload_sync, content, filename)


def build_upload_client(settings: Config) -> FileUploadClient:
    """Create the upload client selected by UPLOAD_BACKEND."""
    if settings.upload_backend == "gcs":
        logger.info(f"Using GCS upload backend (bucket={settings.gcp_bucket_name})")
        return GcsUploadClient(
            bucket_name=settings.gcp_bucket_name,
            project_id=settings.gcp_project_id,
            prefix=settings.gcp_product_images_prefix,
        )
    logger.info(f"Using HTTP upload backend ({settings.upload_endpoint})")
    return HttpUploadClient(
        endpoint=settings.upload_endpoint,
        field_name=settings.upload_field_name,
    )
