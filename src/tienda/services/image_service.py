from __future__ import annotations

import logging
import secrets
import shutil
import time
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from tienda.domain.errors import NotFoundError, ValidationError

log = logging.getLogger("tienda.images")

MAX_IMAGE_BYTES = 5 * 1024 * 1024
PRODUCTS_PREFIX = "products"

# Pillow format name -> stored file extension
ALLOWED_FORMATS = {"PNG": "png", "JPEG": "jpg", "GIF": "gif", "WEBP": "webp"}


def image_format(path: Path) -> str:
    """Open `path` with Pillow and return its format if it is an allowed, readable image."""
    try:
        with Image.open(path) as img:
            fmt = img.format
            if fmt not in ALLOWED_FORMATS:
                raise ValidationError("Only PNG, JPEG, GIF and WEBP images are supported.")
            img.verify()
    except ValidationError:
        raise
    except UnidentifiedImageError:
        raise ValidationError("Only image files can be uploaded.")
    except Exception as exc:
        raise ValidationError(f"Invalid image file: {exc}")
    return fmt


class ImageService:
    """Product pictures kept in a local directory and addressed by public URL."""

    def __init__(self, images_dir: Path | str, public_base_url: str):
        self.root = Path(images_dir)
        self.base_url = public_base_url.rstrip("/")

    def upload(self, path: Path | str) -> str:
        src = Path(path)
        if not src.is_file():
            raise NotFoundError(f"File not found: {src}")

        if src.stat().st_size > MAX_IMAGE_BYTES:
            raise ValidationError("Image must be 5MB or smaller.")

        ext = ALLOWED_FORMATS[image_format(src)]
        name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"
        dest_dir = self.root / PRODUCTS_PREFIX
        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest_dir / name)

        url = f"{self.base_url}/{PRODUCTS_PREFIX}/{name}"
        log.info("image_uploaded source=%s url=%s", src.name, url)
        return url

    def path_for(self, url: str) -> Path | None:
        marker = f"/{PRODUCTS_PREFIX}/"
        if not url or marker not in url:
            return None
        name = url.rsplit(marker, 1)[1]
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return None
        return self.root / PRODUCTS_PREFIX / name

    def remove(self, url: str) -> bool:
        target = self.path_for(url)
        if target is None or not target.exists():
            log.warning("image_remove_skipped url=%s", url)
            return False
        target.unlink()
        log.info("image_removed url=%s", url)
        return True
