"""Admin panel."""

from litestar import Router

from easy_education.admin.routes import save_settings, settings_page, upload_settings_image

admin_router = Router(
    path="/admin",
    route_handlers=[settings_page, save_settings, upload_settings_image],
    tags=["Admin"],
    include_in_schema=False,
)

__all__ = ["admin_router"]
