"""
Scoped temporary files for the upload pipeline.

Each helper is a context manager that owns one path and removes it on
exit, whatever happened inside the block. The orchestrator stacks them in
an ExitStack so cleanup doesn't depend on which step failed.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

logger = logging.getLogger(__name__)


def remove_quietly(path: Path) -> None:
    """Delete a file if it exists. Cleanup failures are logged, not raised."""
    try:
        path.unlink(missing_ok=True)
        logger.debug("Removed temporary file", extra={"path": str(path)})
    except OSError as e:
        logger.warning(
            "Failed to remove temporary file",
            extra={"path": str(path), "error": str(e)}
        )


@contextmanager
def temporary_upload_path(
    directory: Optional[str] = None,
    prefix: str = "tubely-upload-",
    suffix: str = ".mp4",
) -> Generator[Path, None, None]:
    """
    Create an empty, uniquely named file and remove it on exit.

    mkstemp gives every request its own name, so concurrent uploads never
    share a path and no locking is needed.
    """
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        remove_quietly(path)


@contextmanager
def owned_path(path: Path) -> Generator[Path, None, None]:
    """Take ownership of a file some other step created and remove it on exit."""
    try:
        yield path
    finally:
        remove_quietly(path)
