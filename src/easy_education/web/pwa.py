"""Service worker scripts.

Both workers must be served from the site root so their scope covers every
page. They are rendered from templates so Firebase config and the default
manifest come from the server's settings.
"""

from litestar import get
from litestar.response import Template

from easy_education import __version__
from easy_education.core.config import settings
from easy_education.services.manifest import build_manifest
from easy_education.services.site_settings import PwaSettings

JAVASCRIPT = "application/javascript"
# Browsers re-check worker scripts; keep intermediaries from pinning old ones
NO_CACHE = {"Cache-Control": "no-cache", "Service-Worker-Allowed": "/"}


@get("/service-worker.js", sync_to_thread=False, include_in_schema=False)
async def app_service_worker() -> Template:
    return Template(
        template_name="pwa/service-worker.js",
        context={"version": __version__, "default_manifest": build_manifest(PwaSettings())},
        media_type=JAVASCRIPT,
        headers=NO_CACHE,
    )


@get("/firebase-messaging-sw.js", sync_to_thread=False, include_in_schema=False)
async def messaging_service_worker() -> Template:
    return Template(
        template_name="pwa/firebase-messaging-sw.js",
        context={
            "firebase_config": {
                "apiKey": settings.firebase_api_key,
                "projectId": settings.firebase_project_id,
                "messagingSenderId": settings.firebase_sender_id,
            }
        },
        media_type=JAVASCRIPT,
        headers=NO_CACHE,
    )
