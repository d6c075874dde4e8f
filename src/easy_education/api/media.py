"""Image upload endpoint."""

from typing import Any

from litestar import Router, post
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK
from pydantic import BaseModel

from easy_education.core.auth import require_login
from easy_education.services.image_host import ImageUploadError, upload_image


class UploadImageRequest(BaseModel):
    """Base64-encoded image."""

    image: str


@post("/upload-image", status_code=HTTP_200_OK, guards=[require_login])
async def upload_image_endpoint(data: UploadImageRequest) -> Response[dict[str, Any]]:
    """Host an image on ImgBB and return its URLs."""
    try:
        hosted = await upload_image(data.image)
    except ImageUploadError as e:
        return Response(content={"error": str(e)}, status_code=e.status_code)

    return Response(
        content={"success": True, "url": hosted.url, "delete_url": hosted.delete_url}
    )


media_router = Router(path="/api", route_handlers=[upload_image_endpoint], tags=["Media"])
