"""Tests for the web app manifest."""

from unittest.mock import AsyncMock, patch

from easy_education.models.site_setting import SiteSetting
from easy_education.services.manifest import build_manifest, load_manifest
from easy_education.services.site_settings import PwaSettings


def test_default_manifest():
    manifest = build_manifest(PwaSettings())

    assert manifest["name"] == "Easy Education - Free Online Courses"
    assert manifest["display"] == "standalone"
    assert [icon["src"] for icon in manifest["icons"]] == [
        "/icon-192x192.png",
        "/icon-512x512.png",
    ]


def test_custom_icon_used_for_both_sizes():
    manifest = build_manifest(PwaSettings(app_icon="https://i.ibb.co/x/icon.png"))

    assert {icon["src"] for icon in manifest["icons"]} == {"https://i.ibb.co/x/icon.png"}


async def test_load_uses_stored_branding(async_session):
    async_session.add(
        SiteSetting(type="pwa", data={"appShortName": "Shikkha", "themeColor": "#111"})
    )
    await async_session.commit()

    manifest = await load_manifest(async_session)

    assert manifest["short_name"] == "Shikkha"
    assert manifest["theme_color"] == "#111"


async def test_load_falls_back_on_store_error(async_session):
    with patch(
        "easy_education.services.manifest.get_settings_document",
        AsyncMock(side_effect=RuntimeError("db down")),
    ):
        manifest = await load_manifest(async_session)

    assert manifest["short_name"] == "Easy Education"


async def test_manifest_endpoint(client):
    response = await client.get("/api/manifest.json")

    assert response.status_code == 200
    assert response.json()["start_url"] == "/"
