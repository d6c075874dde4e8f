"""ImgBB image hosting."""

import base64
from dataclasses import dataclass

import httpx
import structlog

from easy_education.core.config import settings

logger = structlog.get_logger()

MAX_IMAGE_BYTES = 32 * 1024 * 1024  # ImgBB limit


class ImageUploadError(Exception):
    """The image was rejected locally or by the host."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HostedImage:
    url: str
    delete_url: str | None = None


def validate_image(filename: str | None, content_type: str | None, size: int) -> None:
    """Reject non-images, HEIC files and anything over the host's size limit.

    Raises:
        ImageUploadError: If the file cannot be uploaded
    """
    name = (filename or "").lower()
    if not (content_type or "").startswith("image/"):
        raise ImageUploadError("Please select an image file")
    if name.endswith(".heic") or name.endswith(".heif") or content_type == "image/heic":
        raise ImageUploadError("HEIC images are not supported. Please use JPG or PNG.")
    if size > MAX_IMAGE_BYTES:
        raise ImageUploadError("Image size must be less than 32MB")
    if size == 0:
        raise ImageUploadError("No image provided")


async def upload_image(
    image: bytes | str,
    api_key: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HostedImage:
    """Upload an image to ImgBB.

    Args:
        image: Raw bytes, or an already base64-encoded string
        api_key: ImgBB key (defaults to settings)
        transport: Optional httpx transport

    Returns:
        The hosted image URLs

    Raises:
        ImageUploadError: If the key is missing or the upload fails
    """
    key = api_key or settings.imgbb_api_key
    if not key:
        logger.error("IMGBB_API_KEY not configured")
        raise ImageUploadError("Server configuration error", status_code=500)

    encoded = base64.b64encode(image).decode() if isinstance(image, bytes) else image
    if not encoded:
        raise ImageUploadError("No image provided")

    logger.info("Uploading image to ImgBB")
    try:
        async with httpx.AsyncClient(timeout=60.0, transport=transport) as client:
            response = await client.post(
                settings.imgbb_upload_url, params={"key": key}, data={"image": encoded}
            )
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("ImgBB request failed", error=str(e))
        raise ImageUploadError("Upload failed", status_code=502) from e

    if response.status_code >= 400:
        message = (data.get("error") or {}).get("message") or "Upload failed"
        logger.error("ImgBB rejected upload", status_code=response.status_code, error=message)
        raise ImageUploadError(message, status_code=response.status_code)

    payload = data.get("data") or {}
    if not data.get("success") or not payload.get("url"):
        logger.error("Invalid ImgBB response", response=data)
        raise ImageUploadError("Invalid response from ImgBB", status_code=500)

    logger.info("Image uploaded", url=payload["url"])
    return HostedImage(url=payload["url"], delete_url=payload.get("delete_url"))
