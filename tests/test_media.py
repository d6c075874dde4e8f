"""Tests for image hosting and e-mail delivery."""

import base64
import json
from unittest.mock import patch
from urllib.parse import parse_qs

import httpx
import pytest

from easy_education.services.email import EmailDeliveryError, build_mail, send_email
from easy_education.services.image_host import (
    MAX_IMAGE_BYTES,
    ImageUploadError,
    upload_image,
    validate_image,
)


class TestValidateImage:
    def test_accepts_png(self):
        validate_image("logo.png", "image/png", 1024)

    def test_rejects_non_image(self):
        with pytest.raises(ImageUploadError, match="image file"):
            validate_image("notes.pdf", "application/pdf", 1024)

    def test_rejects_heic(self):
        with pytest.raises(ImageUploadError, match="HEIC"):
            validate_image("IMG_0001.HEIC", "image/heic", 1024)

    def test_rejects_oversized(self):
        with pytest.raises(ImageUploadError, match="32MB"):
            validate_image("big.jpg", "image/jpeg", MAX_IMAGE_BYTES + 1)

    def test_rejects_empty(self):
        with pytest.raises(ImageUploadError, match="No image"):
            validate_image("empty.png", "image/png", 0)


class TestUploadImage:
    async def test_uploads_base64(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "url": "https://i.ibb.co/abc/logo.png",
                        "delete_url": "https://ibb.co/abc/delete",
                    },
                },
            )

        hosted = await upload_image(
            b"\x89PNG", api_key="imgbb-key", transport=httpx.MockTransport(handler)
        )

        assert hosted.url == "https://i.ibb.co/abc/logo.png"
        assert hosted.delete_url == "https://ibb.co/abc/delete"
        assert seen[0].url.params["key"] == "imgbb-key"
        form = parse_qs(seen[0].content.decode())
        assert form["image"] == [base64.b64encode(b"\x89PNG").decode()]

    async def test_missing_key(self):
        with patch("easy_education.services.image_host.settings.imgbb_api_key", None):
            with pytest.raises(ImageUploadError) as exc_info:
                await upload_image(b"data")

        assert exc_info.value.status_code == 500

    async def test_host_error_status_propagates(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"error": {"message": "Invalid image"}})
        )

        with pytest.raises(ImageUploadError, match="Invalid image") as exc_info:
            await upload_image(b"data", api_key="k", transport=transport)

        assert exc_info.value.status_code == 400

    async def test_invalid_response(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": False})
        )

        with pytest.raises(ImageUploadError, match="Invalid response") as exc_info:
            await upload_image(b"data", api_key="k", transport=transport)

        assert exc_info.value.status_code == 500


class TestSendEmail:
    def test_build_mail(self):
        mail = build_mail("a@example.com", "Hi", "<p>Hi</p>", "Hi")

        assert mail["personalizations"] == [{"to": [{"email": "a@example.com"}], "subject": "Hi"}]
        assert [c["type"] for c in mail["content"]] == ["text/html", "text/plain"]

    async def test_missing_fields(self):
        with pytest.raises(EmailDeliveryError) as exc_info:
            await send_email("a@example.com", "", text="body")

        assert exc_info.value.status_code == 400

    async def test_missing_key(self):
        with patch("easy_education.services.email.settings.sendgrid_api_key", None):
            with pytest.raises(EmailDeliveryError) as exc_info:
                await send_email("a@example.com", "Hi", text="body")

        assert exc_info.value.status_code == 500

    async def test_sends(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        with patch("easy_education.services.email.settings.sendgrid_api_key", "SG.key"):
            await send_email(
                "a@example.com", "Hi", text="body", transport=httpx.MockTransport(handler)
            )

        assert seen[0].headers["Authorization"] == "Bearer SG.key"
        assert json.loads(seen[0].content)["content"] == [{"type": "text/plain", "value": "body"}]

    async def test_rejected(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="unauthorized"))

        with patch("easy_education.services.email.settings.sendgrid_api_key", "SG.key"):
            with pytest.raises(EmailDeliveryError) as exc_info:
                await send_email("a@example.com", "Hi", text="body", transport=transport)

        assert exc_info.value.status_code == 401
