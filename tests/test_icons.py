"""Tests for vibecal.integrations.icons — icon compression and upload."""

from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from vibecal.integrations.api_client import APIHTTPError
from vibecal.integrations.icons import ICON_SIZE, prepare_icon, upload_generated_icon


def _png_bytes(size=(1024, 768), mode="RGBA"):
    buffer = BytesIO()
    Image.new(mode, size, color=(200, 120, 40, 255) if mode == "RGBA" else (200, 120, 40)).save(
        buffer, format="PNG",
    )
    return buffer.getvalue()


class TestPrepareIcon:
    def test_resizes_to_rgb_jpeg(self):
        result = prepare_icon(_png_bytes())
        with Image.open(BytesIO(result)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == ICON_SIZE

    def test_rgb_input(self):
        result = prepare_icon(_png_bytes(size=(64, 64), mode="RGB"))
        with Image.open(BytesIO(result)) as img:
            assert img.size == ICON_SIZE

    def test_not_an_image(self):
        with pytest.raises(OSError):
            prepare_icon(b"definitely not an image")


class TestUploadGeneratedIcon:
    @pytest.mark.asyncio
    async def test_uploads_compressed(self, tmp_path):
        path = tmp_path / "generated.png"
        path.write_bytes(_png_bytes())
        client = MagicMock()
        client.upload_icon = AsyncMock(return_value="https://cdn.example.test/p1.jpg")

        url = await upload_generated_icon(client, "p1", path)

        assert url == "https://cdn.example.test/p1.jpg"
        post_id, payload = client.upload_icon.call_args[0]
        assert post_id == "p1"
        assert payload.startswith(b"\xff\xd8")

    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, tmp_path):
        client = MagicMock()
        client.upload_icon = AsyncMock()
        assert await upload_generated_icon(client, "p1", tmp_path / "nope.png") is None
        client.upload_icon.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure_returns_none(self, tmp_path):
        path = tmp_path / "generated.png"
        path.write_bytes(_png_bytes())
        client = MagicMock()
        client.upload_icon = AsyncMock(side_effect=APIHTTPError(413))
        assert await upload_generated_icon(client, "p1", path) is None
