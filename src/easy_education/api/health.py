"""Health check endpoint."""

from litestar import Router, get
from litestar.status_codes import HTTP_200_OK

from easy_education import __version__
from easy_education.core.firebase import firebase_ready


@get("/health", status_code=HTTP_200_OK, sync_to_thread=False)
def health_check() -> dict[str, str | bool]:
    """Health check endpoint.

    Returns:
        Status, version and whether Firebase is initialized
    """
    return {
        "status": "ok",
        "version": __version__,
        "firebase": firebase_ready(),
    }


health_router = Router(path="/", route_handlers=[health_check])
