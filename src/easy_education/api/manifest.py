"""Dynamic web app manifest."""

from typing import Any

from litestar import Router, get
from litestar.response import Response
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.services.manifest import load_manifest


@get("/manifest.json", sync_to_thread=False)
async def manifest(session: AsyncSession) -> Response[dict[str, Any]]:
    """Manifest built from the stored PWA branding."""
    return Response(
        content=await load_manifest(session),
        headers={"Cache-Control": "public, max-age=0, must-revalidate"},
    )


manifest_router = Router(path="/api", route_handlers=[manifest], tags=["PWA"])
