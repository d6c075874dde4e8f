"""Web app manifest built from the `pwa` settings document."""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.config import settings
from easy_education.services.site_settings import PwaSettings, get_settings_document

logger = structlog.get_logger()

MANIFEST_DESCRIPTION = "Learn from the best free online courses with expert teachers"
DEFAULT_ICON_192 = "/icon-192x192.png"
DEFAULT_ICON_512 = "/icon-512x512.png"


def build_manifest(pwa: PwaSettings) -> dict[str, Any]:
    """Render the manifest for the given branding.

    A custom app icon is used for both icon sizes; the stock icons ship in
    two resolutions.
    """
    icon_512 = DEFAULT_ICON_512 if pwa.app_icon == DEFAULT_ICON_192 else pwa.app_icon
    return {
        "name": pwa.app_name,
        "short_name": pwa.app_short_name,
        "description": MANIFEST_DESCRIPTION,
        "start_url": "/",
        "scope": "/",
        "display": "standalone",
        "background_color": pwa.background_color,
        "theme_color": pwa.theme_color,
        "orientation": "portrait-primary",
        "prefer_related_applications": False,
        "gcm_sender_id": settings.firebase_sender_id,
        "icons": [
            {
                "src": pwa.app_icon,
                "sizes": "192x192",
                "type": "image/png",
                "purpose": "any maskable",
            },
            {
                "src": icon_512,
                "sizes": "512x512",
                "type": "image/png",
                "purpose": "any maskable",
            },
        ],
    }


async def load_manifest(session: AsyncSession) -> dict[str, Any]:
    """Build the manifest, falling back to default branding if the store fails."""
    try:
        pwa = await get_settings_document(session, "pwa")
    except Exception as e:
        logger.error("Error loading PWA settings, using defaults", error=str(e))
        pwa = PwaSettings()
    return build_manifest(pwa)  # type: ignore[arg-type]
