"""Attachment type detection from magic bytes."""

from gemini_client.errors import UnknownFileTypeError
from gemini_client.types import FileType

# First four bytes, upper-case hex -> MIME type
_SIGNATURES: dict[str, FileType] = {
    "89504E47": "image/png",
    "47494638": "image/gif",
    "FFD8FFDB": "image/jpeg",
    "FFD8FFE0": "image/jpeg",
}


def sniff_mime_type(data: bytes) -> FileType:
    """Return the MIME type of an image from its leading bytes.

    Only PNG, GIF, and JPEG (raw and JFIF) are recognized, matching what
    the vision model accepts inline.
    """
    if len(data) < 4:
        msg = "Unknown file type. Please provide a .png, .gif, or .jpeg/.jpg file."
        raise UnknownFileTypeError(msg)

    signature = bytes(data[:4]).hex().upper()
    try:
        return _SIGNATURES[signature]
    except KeyError:
        msg = "Unknown file type. Please provide a .png, .gif, or .jpeg/.jpg file."
        raise UnknownFileTypeError(msg) from None
