"""
Local assets directory for thumbnails.

Files are written under a single root and served by the app at a fixed
URL prefix. Names are random, so writers never collide and no locking is
needed.
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from ...core.media.errors import StagingError, UploadTooLargeError
from ...core.media.uploads import copy_limited

logger = logging.getLogger(__name__)


class LocalAssetStore:
    """Keyed file store rooted at one directory."""

    def __init__(self, root: str, base_url: str) -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        """Create the assets directory if it doesn't exist yet."""
        self._root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        # names are generated, but refuse anything that would escape the root
        if not name or Path(name).name != name:
            raise ValueError(f"Invalid asset name: {name!r}")
        return self._root / name

    def url_for(self, name: str) -> str:
        return f"{self._base_url}/{name}"

    def save(self, name: str, source: BinaryIO, limit: int) -> int:
        """Write source to root/name. A failed or oversized write leaves nothing behind."""
        path = self.path_for(name)
        try:
            with path.open("wb") as destination:
                size = copy_limited(source, destination, limit)
        except UploadTooLargeError:
            path.unlink(missing_ok=True)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StagingError(f"Error writing asset {name}: {e}") from e

        logger.debug("Saved asset", extra={"path": str(path), "size_bytes": size})
        return size

    def has_free_space(self, minimum_bytes: int = 0) -> bool:
        """Used by the readiness check."""
        try:
            return shutil.disk_usage(self._root).free > minimum_bytes
        except OSError:
            return False
