"""Local filesystem store for costume photos."""
import logging
import time
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from costume_contest.config import get_settings
from costume_contest.utils.exceptions import BlobStorageError, ValidationRejected

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Stores uploaded images in a directory and hands out public URLs for them.

    Paths are flat file names, ``{phone}-{epoch_millis}.{ext}``. The directory
    is served by the app under ``/uploads``.
    """

    def __init__(self, upload_dir: str | Path, public_base_url: str,
                 allowed_extensions: set[str] | None = None, max_bytes: int | None = None):
        self.root = Path(upload_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.allowed_extensions = {ext.lower() for ext in (allowed_extensions or set())}
        self.max_bytes = max_bytes

    def ensure_container(self) -> None:
        """Create the upload directory if it does not exist."""
        self.root.mkdir(parents=True, exist_ok=True)

    def build_path(self, phone: str, filename: str, now_ms: int | None = None) -> str:
        """Build a storage key from the uploader's phone and the original file extension.

        Raises:
            ValidationRejected: If the file has no extension or an unsupported one
        """
        if not filename or "." not in filename:
            raise ValidationRejected("invalid_image_type", "image file must have an extension")
        ext = filename.rsplit(".", 1)[1].lower()
        if self.allowed_extensions and ext not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationRejected("invalid_image_type", f"unsupported image type. allowed: {allowed}")
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f"{phone}-{now_ms}.{ext}"

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path).resolve()
        if candidate.parent != self.root.resolve():
            raise BlobStorageError(BlobStorageError.PERMISSION_DENIED, f"path outside storage: {path}")
        return candidate

    def upload(self, path: str, data: bytes) -> str:
        """Write the image and return its public URL. Never overwrites.

        Raises:
            ValidationRejected: If the image is empty or too large
            BlobStorageError: If the write fails
        """
        if not data:
            raise ValidationRejected("empty_image", "image file is empty")
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise ValidationRejected("image_too_large", f"image exceeds {self.max_bytes} bytes")

        if not self.root.is_dir():
            logger.error(f"Upload directory missing: {self.root}")
            raise BlobStorageError(BlobStorageError.CONTAINER_MISSING, str(self.root))

        target = self._resolve(path)
        try:
            with open(target, "xb") as handle:
                handle.write(data)
        except PermissionError as e:
            logger.error(f"Permission denied writing image {path}: {e}")
            raise BlobStorageError(BlobStorageError.PERMISSION_DENIED, str(e)) from e
        except FileNotFoundError as e:
            logger.error(f"Upload directory vanished while writing {path}: {e}")
            raise BlobStorageError(BlobStorageError.CONTAINER_MISSING, str(e)) from e
        except OSError as e:
            logger.error(f"Failed to write image {path}: {e}")
            raise BlobStorageError(BlobStorageError.OTHER, str(e)) from e

        logger.info(f"Stored image {path} ({len(data)} bytes)")
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    def path_from_url(self, url: str | None) -> str | None:
        """Recover the storage key from a public URL, or None if it is not one of ours."""
        if not url:
            return None
        if url.startswith(self.public_base_url + "/"):
            return url[len(self.public_base_url) + 1:] or None
        filename = urlparse(url).path.rsplit("/", 1)[-1]
        if filename and "." in filename and (self.root / filename).exists():
            return filename
        return None

    def delete(self, path: str) -> bool:
        """Remove a stored image. Returns False if it was already gone.

        Raises:
            BlobStorageError: If the file exists but cannot be removed
        """
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except PermissionError as e:
            raise BlobStorageError(BlobStorageError.PERMISSION_DENIED, str(e)) from e
        except OSError as e:
            raise BlobStorageError(BlobStorageError.OTHER, str(e)) from e
        logger.info(f"Deleted image {path}")
        return True

    def purge(self) -> int:
        """Delete every stored image. Returns the number of files removed."""
        if not self.root.is_dir():
            return 0
        removed = 0
        for item in self.root.iterdir():
            if item.is_file():
                try:
                    item.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning(f"Could not delete {item.name} during purge: {e}")
        return removed


@lru_cache()
def get_blob_storage() -> LocalBlobStorage:
    """Get the shared blob storage configured from settings."""
    settings = get_settings()
    return LocalBlobStorage(
        settings.upload_dir,
        settings.public_base_url,
        allowed_extensions=settings.allowed_image_extensions,
        max_bytes=settings.max_upload_bytes,
    )
