"""Best-effort pixel dimensions for attachment files."""

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def probe_image_dimensions(file_path: str | Path | None) -> tuple[int, int] | None:
    """Decode an image file and return its (width, height).

    Never raises: a missing, unreadable or non-image file yields None.
    """
    if not file_path:
        return None

    path = Path(file_path)
    try:
        with Image.open(path) as img:
            img.load()
            return img.size
    except FileNotFoundError:
        logger.debug("Attachment file missing: %s", path)
    except UnidentifiedImageError:
        logger.debug("Attachment is not a decodable image: %s", path)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Failed to decode attachment %s: %s", path, e)
    return None
