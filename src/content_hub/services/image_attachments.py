"""
# Image Attachments

Conversion between the three shapes an image takes in the Content Hub:

1. **Request payload**: base64 text, optionally wrapped in a `data:` URI, plus a declared MIME type.
2. **Stored form**: raw bytes (BSON binary) + MIME type + last-updated timestamp, in flat fields
   named after a prefix (`heroImageData`, `heroImageMimeType`, `heroImageUpdatedAt`).
3. **Display form**: a self-contained data URI, derived on every read and never persisted.

Older records kept the image as a base64 string, sometimes together with a persisted data URI in
`<prefix>Url`. `from_storage()` accepts both and returns the canonical attachment; the next write
replaces them with the stored form.

Size limits are not enforced here; oversized request bodies are rejected by the transport
middleware before they reach this module.

## Usage

```python
attachment = decode_payload(request.style_image_data, request.style_image_mime_type)
await collection.update_one({"id": guide_id}, {"$set": to_storage(attachment, STYLE_IMAGE)})

stored = from_storage(doc, STYLE_IMAGE)
to_data_uri(stored.attachment)  # "data:image/png;base64,iVBORw0..."
```
"""

import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any, Dict, NamedTuple, Optional, Tuple

from content_hub.errors import ValidationError
from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import ImageAttachment

logger = get_logger(prefix="[Image Attachments]")

DEFAULT_MIME_TYPE = "image/jpeg"
STYLE_IMAGE = "styleImage"
HERO_IMAGE = "heroImage"

_MIME_PATTERN = re.compile(r"^image/[a-z0-9][a-z0-9.+-]*$")
_DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StoredImage(NamedTuple):
    """Result of reading an image reference: an owned attachment or an external URL (or neither)."""

    attachment: Optional[ImageAttachment]
    source_url: Optional[str]


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """
    Default a missing MIME type to `image/jpeg` and reject anything that is not `image/*`.

    Raises:
        `ValidationError`: If the MIME type is not an image type.
    """
    if not mime_type or not mime_type.strip():
        return DEFAULT_MIME_TYPE
    normalized = mime_type.strip().lower()
    if not _MIME_PATTERN.match(normalized):
        raise ValidationError(f"Unsupported image type: {mime_type}")
    return normalized


def build_attachment(data: bytes, mime_type: Optional[str] = None, updated_at: Optional[datetime] = None) -> ImageAttachment:
    """
    Build the canonical stored form of an image.

    Args:
        data (`bytes`): Raw image bytes. Must not be empty.
        mime_type (`Optional[str]`): Declared MIME type, `image/jpeg` when omitted.
        updated_at (`Optional[datetime]`): Timestamp to record, now (UTC) by default.

    Returns:
        `ImageAttachment`: The validated attachment.

    Raises:
        `ValidationError`: If `data` is empty or the MIME type is not an image type.
    """
    if not data:
        raise ValidationError("Image data is required")
    return ImageAttachment(
        data=bytes(data),
        mime_type=normalize_mime_type(mime_type),
        updated_at=updated_at or datetime.now(timezone.utc),
    )


def to_data_uri(attachment: ImageAttachment) -> str:
    """Derive the display form of an attachment."""
    encoded = base64.b64encode(attachment.data).decode("ascii")
    return f"data:{attachment.mime_type};base64,{encoded}"


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Image data is not valid base64") from e


def parse_data_uri(uri: str) -> Tuple[bytes, str]:
    """
    Split a base64 data URI into bytes and MIME type.

    Returns:
        `Tuple[bytes, str]`: The decoded bytes and the (normalized) MIME type.

    Raises:
        `ValidationError`: If the URI is malformed, not base64-encoded, or not an image.
    """
    match = _DATA_URI_PATTERN.match(uri.strip())
    if not match or ";base64" not in match.group("params").lower():
        raise ValidationError("Image data URI must be base64-encoded")
    return _b64decode(match.group("payload")), normalize_mime_type(match.group("mime"))


def decode_payload(text: Optional[str], mime_type: Optional[str] = None) -> ImageAttachment:
    """
    Turn a request payload into an attachment.

    Accepts bare base64 or a data URI. For a data URI the MIME type embedded in the URI wins
    over `mime_type`.

    Raises:
        `ValidationError`: If the payload is missing, undecodable or empty.
    """
    if not text or not text.strip():
        raise ValidationError("Image data is required")

    if text.lstrip().startswith("data:"):
        data, embedded_mime = parse_data_uri(text)
        return build_attachment(data, embedded_mime)
    return build_attachment(_b64decode(text), mime_type)


def to_storage(attachment: ImageAttachment, prefix: str) -> Dict[str, Any]:
    """Return the `$set` fields persisting an attachment under `prefix`."""
    return {
        f"{prefix}Data": attachment.data,
        f"{prefix}MimeType": attachment.mime_type,
        f"{prefix}UpdatedAt": attachment.updated_at,
    }


def storage_fields(prefix: str) -> Dict[str, str]:
    """Return the `$unset` fields removing an owned image stored under `prefix`."""
    return {f"{prefix}Data": "", f"{prefix}MimeType": "", f"{prefix}UpdatedAt": ""}


def legacy_fields(prefix: str) -> Dict[str, str]:
    """Return the `$unset` fields for the redundant data URI older records persisted."""
    return {f"{prefix}Url": ""}


def from_storage(doc: Dict[str, Any], prefix: str) -> StoredImage:
    """
    Read the image reference stored under `prefix`.

    Resolution order:
    1. `<prefix>Data` as bytes (canonical) or as a legacy base64 / data URI string.
    2. `<prefix>Url` holding a legacy persisted data URI.
    3. `<prefix>Url` holding an external URL, returned as `source_url`.

    Unreadable legacy data is logged and treated as absent rather than failing the whole read.
    """
    mime_type = doc.get(f"{prefix}MimeType")
    updated_at = doc.get(f"{prefix}UpdatedAt") or doc.get("updatedAt") or _EPOCH
    url = doc.get(f"{prefix}Url") or None
    raw = doc.get(f"{prefix}Data")

    try:
        if isinstance(raw, (bytes, bytearray)) and raw:
            return StoredImage(build_attachment(raw, mime_type, updated_at), None)
        if isinstance(raw, str) and raw.strip():
            if raw.lstrip().startswith("data:"):
                data, embedded_mime = parse_data_uri(raw)
                return StoredImage(build_attachment(data, embedded_mime, updated_at), None)
            return StoredImage(build_attachment(_b64decode(raw), mime_type, updated_at), None)
        if isinstance(url, str) and url.startswith("data:"):
            data, embedded_mime = parse_data_uri(url)
            return StoredImage(build_attachment(data, embedded_mime, updated_at), None)
    except ValidationError as e:
        logger.warning("Ignoring unreadable %s on record %s: %s", prefix, doc.get("id") or doc.get("_id"), e.message)
        url = None if isinstance(url, str) and url.startswith("data:") else url

    return StoredImage(None, url)
