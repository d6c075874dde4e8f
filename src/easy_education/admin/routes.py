"""Admin settings routes."""

from typing import Any

import structlog
from litestar import Request, get, post
from litestar.datastructures import UploadFile
from litestar.response import Redirect, Template
from litestar.status_codes import HTTP_200_OK
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.admin.auth import get_admin
from easy_education.core.config import settings
from easy_education.services.image_host import ImageUploadError, upload_image, validate_image
from easy_education.services.site_settings import (
    SETTINGS_TYPES,
    SiteSettingsBundle,
    branding_changed,
    dump_document,
    get_settings_document,
    load_site_settings,
    parse_document,
    save_site_settings,
)
from easy_education.web.context import get_csrf_token, page_context

logger = structlog.get_logger()

LOAD_ERROR = "Failed to load settings"
SAVE_ERROR = "Failed to save settings. Please try again."

# Form field -> settings type; checkboxes are absent from the form when off
FORM_FIELDS: dict[str, tuple[str, ...]] = {
    "general": ("siteName", "siteDescription", "communityEnabled"),
    "payment": ("instructions",),
    "pwa": (
        "appName",
        "appShortName",
        "appIcon",
        "appLogo",
        "themeColor",
        "backgroundColor",
    ),
}
CHECKBOX_FIELDS = frozenset({"communityEnabled"})
IMAGE_FIELDS = frozenset({"appIcon", "appLogo"})


def bundle_from_form(form_data: Any) -> SiteSettingsBundle:
    """Build all three settings documents from the submitted form.

    Blank text fields fall back to their defaults.
    """
    documents: dict[str, Any] = {}
    for settings_type, fields in FORM_FIELDS.items():
        values: dict[str, Any] = {}
        for name in fields:
            if name in CHECKBOX_FIELDS:
                values[name] = form_data.get(name) in ("on", "true", "1")
            else:
                value = (form_data.get(name) or "").strip()
                if value:
                    values[name] = value
        documents[settings_type] = parse_document(settings_type, values)
    return SiteSettingsBundle(**documents)


@get("/settings", sync_to_thread=False)
async def settings_page(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Settings form, prefilled with the stored documents."""
    admin = await get_admin(request, session)
    if isinstance(admin, Redirect):
        return admin

    load_error = None
    try:
        bundle = await load_site_settings(session)
    except Exception as e:
        logger.error("Error loading settings", error=str(e))
        load_error = LOAD_ERROR
        bundle = SiteSettingsBundle()

    return Template(
        template_name="admin/settings.html",
        context=await page_context(
            request,
            session,
            values={
                settings_type: dump_document(getattr(bundle, settings_type))
                for settings_type in SETTINGS_TYPES
            },
            load_error=load_error,
        ),
    )


@post("/settings", sync_to_thread=False, status_code=HTTP_200_OK)
async def save_settings(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Save all settings documents (HTMX).

    When branding changes, the result fragment reloads the page after a
    short delay so the new manifest and logo are picked up.
    """
    admin = await get_admin(request, session)
    if isinstance(admin, Redirect):
        return admin

    form_data = await request.form()
    try:
        bundle = bundle_from_form(form_data)
        before = await get_settings_document(session, "pwa")
        await save_site_settings(session, bundle)
    except Exception as e:
        await session.rollback()
        logger.error("Error saving settings", admin_id=admin.id, error=str(e))
        return Template(
            template_name="admin/partials/settings_result.html",
            context={"success": False, "error": SAVE_ERROR},
        )

    reload = branding_changed(before, bundle.pwa)  # type: ignore[arg-type]
    logger.info("Settings saved", admin_id=admin.id, branding_changed=reload)
    return Template(
        template_name="admin/partials/settings_result.html",
        context={
            "success": True,
            "reload": reload,
            "reload_delay_ms": settings.settings_reload_delay_seconds * 1000,
        },
    )


@post("/settings/upload", sync_to_thread=False, status_code=HTTP_200_OK)
async def upload_settings_image(
    request: Request[Any, Any, Any], session: AsyncSession
) -> Template | Redirect:
    """Upload a branding image and return its form field with the hosted URL.

    The URL is only stored when the settings form is saved.
    """
    admin = await get_admin(request, session)
    if isinstance(admin, Redirect):
        return admin

    form_data = await request.form()
    field = form_data.get("field", "")
    current = form_data.get("current", "")
    if field not in IMAGE_FIELDS:
        return Template(
            template_name="admin/partials/image_field.html",
            context={
                "field": "appIcon",
                "url": current,
                "error": "Unknown image field",
                "csrf_token": get_csrf_token(request),
            },
        )

    upload = form_data.get("file")
    context: dict[str, Any] = {
        "field": field,
        "url": current,
        "csrf_token": get_csrf_token(request),
    }
    if not isinstance(upload, UploadFile):
        context["error"] = "No image provided"
        return Template(template_name="admin/partials/image_field.html", context=context)

    try:
        content = await upload.read()
        validate_image(upload.filename, upload.content_type, len(content))
        hosted = await upload_image(content)
    except ImageUploadError as e:
        logger.warning("Image upload rejected", field=field, error=str(e))
        context["error"] = str(e)
    else:
        context["url"] = hosted.url
        context["uploaded"] = True

    return Template(template_name="admin/partials/image_field.html", context=context)
