"""Image type detection from file signatures.

Uploaded images are checked against their leading bytes so a file cannot pass
as an image merely by declaring an image Content-Type.
"""

from typing import NamedTuple


MIN_BYTES_FOR_DETECTION = 4
HEADER_BYTES = 64


class MagicSignature(NamedTuple):
    """Byte pattern identifying a file type."""

    bytes_pattern: bytes
    mime_type: str
    offset: int = 0


# https://en.wikipedia.org/wiki/List_of_file_signatures
MAGIC_SIGNATURES: list[MagicSignature] = [
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
    MagicSignature(b"WEBP", "image/webp", offset=8),
    MagicSignature(b"BM", "image/bmp"),
    MagicSignature(b"II*\x00", "image/tiff"),
    MagicSignature(b"MM\x00*", "image/tiff"),
    MagicSignature(b"ftypavif", "image/avif", offset=4),
]


class ContentCheck(NamedTuple):
    """Outcome of comparing file content with its declared type."""

    valid: bool
    detected_type: str | None
    error: str | None = None


def detect_content_type(data: bytes) -> str | None:
    """Detected MIME type, or None when no known signature matches."""
    if len(data) < MIN_BYTES_FOR_DETECTION:
        return None

    for sig in MAGIC_SIGNATURES:
        end = sig.offset + len(sig.bytes_pattern)
        if data[sig.offset : end] != sig.bytes_pattern:
            continue
        # WebP signature sits inside a RIFF container
        if sig.mime_type == "image/webp" and not data.startswith(b"RIFF"):
            continue
        return sig.mime_type

    return None


def check_image_content(
    data: bytes,
    declared_type: str | None,
    allowed_types: frozenset[str],
) -> ContentCheck:
    """Validate an image's content against its declared type.

    Any detected image type in ``allowed_types`` is accepted even when it
    differs from the declared one (a PNG uploaded as ``image/jpeg`` passes);
    non-image content never does.

    >>> check_image_content(b"\\x89PNG\\r\\n\\x1a\\n", "image/png", frozenset({"image/png"}))
    ContentCheck(valid=True, detected_type='image/png', error=None)
    """
    detected = detect_content_type(data[:HEADER_BYTES])
    if detected is None:
        return ContentCheck(False, None, "Unable to detect image type from content")

    if detected not in allowed_types:
        return ContentCheck(
            False,
            detected,
            f"File type '{detected}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_types))}",
        )

    declared = (declared_type or "").split(";")[0].strip().lower()
    if declared and not declared.startswith("image/"):
        return ContentCheck(
            False, detected, f"Declared type '{declared}' is not an image"
        )

    return ContentCheck(True, detected)
