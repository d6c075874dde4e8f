"""Test fixtures for easy-education."""

from tests.fixtures.helpers import RecordingDispatcher, csrf_headers, gateway_transport, sign_in

__all__ = [
    "RecordingDispatcher",
    "csrf_headers",
    "gateway_transport",
    "sign_in",
]
