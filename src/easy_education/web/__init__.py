"""Public site: pages, header UI fragments and service worker scripts."""

from easy_education.web.auth import create_session, login_page, logout
from easy_education.web.checkout import checkout_online, checkout_page, checkout_submit
from easy_education.web.header import (
    close_sidebar,
    open_sidebar,
    search_pointer_outside,
    submit_search,
    toggle_search,
)
from easy_education.web.pages import (
    announcements_page,
    community_page,
    courses_page,
    enroll_free,
    home,
)
from easy_education.web.payment import payment_cancel, payment_success, payment_verify
from easy_education.web.pwa import app_service_worker, messaging_service_worker
from easy_education.web.theme import toggle_theme

web_routes = [
    # Pages
    home,
    courses_page,
    announcements_page,
    community_page,
    enroll_free,
    # Auth
    login_page,
    create_session,
    logout,
    # Checkout and payment confirmation
    checkout_page,
    checkout_submit,
    checkout_online,
    payment_success,
    payment_verify,
    payment_cancel,
    # Header and theme fragments
    open_sidebar,
    close_sidebar,
    toggle_search,
    search_pointer_outside,
    submit_search,
    toggle_theme,
    # Service workers
    app_service_worker,
    messaging_service_worker,
]

__all__ = ["web_routes"]
