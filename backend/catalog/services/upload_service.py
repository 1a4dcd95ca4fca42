# Overview: Product image storage on local disk (save, resolve, best-effort delete).

from __future__ import annotations

import logging
import os
import random
import shutil
import time

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError

logger = logging.getLogger("catalog.uploads")

ALLOWED_IMAGE_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}
URL_PREFIX = "/uploads/"


class UploadStorage:
    """
    Image files referenced by path from products.image ("/uploads/<name>").

    legacy_dir is an older deploy-local uploads directory; files there are
    still resolvable and are copied into uploads_dir by migrate_legacy().
    """

    def __init__(self, uploads_dir: str, legacy_dir: str | None = None, max_bytes: int = 5 * 1024 * 1024):
        self.uploads_dir = uploads_dir
        self.legacy_dir = legacy_dir
        self.max_bytes = max_bytes

    def ensure_dirs(self) -> None:
        os.makedirs(self.uploads_dir, exist_ok=True)

    def migrate_legacy(self) -> int:
        """One-time copy of legacy uploads that are missing from uploads_dir."""
        if not self.legacy_dir or os.path.abspath(self.legacy_dir) == os.path.abspath(self.uploads_dir):
            return 0
        if not os.path.isdir(self.legacy_dir):
            return 0
        copied = 0
        for name in os.listdir(self.legacy_dir):
            src = os.path.join(self.legacy_dir, name)
            dest = os.path.join(self.uploads_dir, name)
            if os.path.isfile(src) and not os.path.exists(dest):
                shutil.copy2(src, dest)
                copied += 1
        if copied:
            logger.info("Copied %d legacy upload(s) into %s", copied, self.uploads_dir)
        return copied

    def save_image(self, file: FileStorage) -> str:
        """Validate and store an uploaded image; returns its /uploads/ path."""
        filename = secure_filename(file.filename or "")
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        mimetype = (file.mimetype or "").lower()
        mime_ok = any(kind in mimetype for kind in ALLOWED_IMAGE_EXTENSIONS)
        if ext not in ALLOWED_IMAGE_EXTENSIONS or not mime_ok:
            raise ValidationError("Only image files are allowed")

        data = file.read()
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image exceeds {self.max_bytes // (1024 * 1024)} MB limit")

        self.ensure_dirs()
        name = f"product-{int(time.time() * 1000)}-{random.randint(0, 10**9)}.{ext}"
        with open(os.path.join(self.uploads_dir, name), "wb") as fh:
            fh.write(data)
        return URL_PREFIX + name

    def resolve_path(self, url_path: str | None) -> str | None:
        clean = (url_path or "").lstrip("/")
        if not clean.startswith("uploads/"):
            return None
        filename = os.path.basename(clean[len("uploads/"):])
        if not filename:
            return None
        primary = os.path.join(self.uploads_dir, filename)
        if os.path.exists(primary) or not self.legacy_dir:
            return primary
        return os.path.join(self.legacy_dir, filename)

    def remove(self, url_path: str | None) -> bool:
        """Best-effort delete; failures are logged, never raised."""
        path = self.resolve_path(url_path)
        if not path:
            return False
        try:
            if os.path.exists(path):
                os.remove(path)
                return True
        except OSError as e:
            logger.warning("Failed to delete image %s: %s", path, e)
        return False
