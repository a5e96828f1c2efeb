"""Post icons: shrink a generated image and attach it to a timeline post."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image

if TYPE_CHECKING:
    from vibecal.integrations.api_client import VibeAPIClient

logger = logging.getLogger(__name__)

ICON_SIZE = (512, 512)
JPEG_QUALITY = 50


def prepare_icon(image_bytes: bytes) -> bytes:
    """Resize to a 512x512 RGB JPEG at quality 50.

    Raises PIL.UnidentifiedImageError (an OSError) for data that is not an image.
    """
    with Image.open(BytesIO(image_bytes)) as img:
        if img.mode != "RGB":
            img = img.convert("RGB")
        icon = img.resize(ICON_SIZE)

    buffer = BytesIO()
    icon.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return buffer.getvalue()


async def upload_generated_icon(
    client: VibeAPIClient, post_id: str, image_path: str | Path,
) -> str | None:
    """Compress the image at `image_path` and upload it as the post's icon.

    Returns the icon URL, or None if anything fails.
    """
    try:
        raw = await asyncio.to_thread(Path(image_path).read_bytes)
        compressed = await asyncio.to_thread(prepare_icon, raw)
        icon_url = await client.upload_icon(post_id, compressed)
    except Exception as exc:
        logger.error("Icon upload for post %s failed: %s", post_id, exc)
        return None

    logger.info("Icon uploaded for post %s: %s", post_id, icon_url)
    return icon_url
