"""
Declared content-type handling and random asset naming.

We trust the Content-Type the client declared for the file part. No
sniffing of the actual bytes happens anywhere in the pipeline.
"""

import base64
import re
import secrets

from .errors import UnsupportedMediaTypeError

VIDEO_MEDIA_TYPES = frozenset({"video/mp4"})
THUMBNAIL_MEDIA_TYPES = frozenset({"image/jpeg", "image/png"})

RANDOM_NAME_BYTES = 32

_MEDIA_TYPE_PATTERN = re.compile(r"^[a-z0-9!#$&^_.+-]+/[a-z0-9!#$&^_.+-]+$")


def parse_media_type(content_type: str | None) -> str:
    """
    Return the bare media type ("type/subtype") of a Content-Type value.

    Parameters such as charset are dropped and the result is lowercased.
    """
    if not content_type:
        raise UnsupportedMediaTypeError("Missing content type")

    media_type = content_type.split(";", 1)[0].strip().lower()
    if not _MEDIA_TYPE_PATTERN.match(media_type):
        raise UnsupportedMediaTypeError(f"Error parsing media type: {content_type!r}")
    return media_type


def require_media_type(content_type: str | None, allowed: frozenset[str]) -> str:
    """Parse the declared type and reject anything not in `allowed`."""
    media_type = parse_media_type(content_type)
    if media_type not in allowed:
        raise UnsupportedMediaTypeError(f"Media type is not allowed: {media_type}")
    return media_type


def extension_for(media_type: str) -> str:
    """File extension from the subtype: video/mp4 -> mp4, image/png -> png."""
    return media_type.split("/", 1)[1]


def random_asset_name(extension: str) -> str:
    """
    32 bytes of secure randomness, unpadded URL-safe base64, plus extension.

    Collisions are not checked; 256 bits of entropy is enough.
    """
    token = base64.urlsafe_b64encode(secrets.token_bytes(RANDOM_NAME_BYTES))
    return f"{token.rstrip(b'=').decode('ascii')}.{extension}"
