"""File attachments and content-type inference."""

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

import filetype

from .exceptions import AttachmentError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

EXTENSION_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "tiff": "image/tiff",
    "ico": "image/x-icon",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "odt": "application/vnd.oasis.opendocument.text",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    "odp": "application/vnd.oasis.opendocument.presentation",
    "rtf": "application/rtf",
    "txt": "text/plain",
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "htm": "text/html",
    "md": "text/markdown",
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "tgz": "application/gzip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "flv": "video/x-flv",
    "wmv": "video/x-ms-wmv",
    "m4v": "video/x-m4v",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
}

# Control bytes that mark a buffer as binary rather than text.
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _strip_parameters(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip()


def detect_content_type_from_extension(path: Union[str, Path]) -> Optional[str]:
    """Look the file extension up in the fixed extension table."""
    ext = Path(path).suffix.lower().lstrip(".")
    if not ext:
        return None
    return EXTENSION_CONTENT_TYPES.get(ext)


def detect_content_type_from_path(path: Union[str, Path]) -> Optional[str]:
    """Infer a content type from a file name.

    The extension table wins; the system ``mimetypes`` registry is the
    fallback.
    """
    content_type = detect_content_type_from_extension(path)
    if content_type:
        return content_type

    if Path(path).suffix:
        guessed, _ = mimetypes.guess_type(Path(path).name)
        if guessed:
            return _strip_parameters(guessed)

    return None


def detect_content_type_from_content(content: bytes) -> Optional[str]:
    """Sniff a content type from magic bytes.

    Args:
        content: Raw file content

    Returns:
        The detected content type, or None if nothing matched
    """
    guessed = filetype.guess_mime(content) if content else None
    if guessed:
        return guessed

    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return None

    if any(byte in _BINARY_BYTES for byte in content[:512]):
        return None
    return "text/plain"


def _strip_line_breaks(content_b64: str) -> str:
    return content_b64.replace("\r", "").replace("\n", "")


def _decode_base64(content_b64: str) -> bytes:
    try:
        return base64.b64decode(_strip_line_breaks(content_b64), validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise AttachmentError("invalid base64 content provided", cause=e) from e


@dataclass(frozen=True)
class Attachment:
    """A file attached to an outgoing email.

    ``content`` holds the base64-encoded file body. Instances built directly
    are only checked when a payload is built; the ``from_*`` constructors
    check their input up front.
    """

    file_name: str
    content_type: str
    content: str
    inline: bool = False

    @classmethod
    def from_content(
        cls,
        file_name: str,
        content: bytes,
        content_type: Optional[str] = None,
        inline: bool = False,
    ) -> "Attachment":
        """Build an attachment from raw bytes.

        Args:
            file_name: Name shown to the recipient
            content: Raw file content
            content_type: Explicit content type; sniffed from the bytes if omitted
            inline: Whether the attachment is rendered inline

        Returns:
            A new Attachment

        Raises:
            AttachmentError: If the file name is blank
        """
        if not file_name or not file_name.strip():
            raise AttachmentError("file_name is required")
        if not isinstance(content, (bytes, bytearray)):
            raise AttachmentError("content must be bytes")

        content = bytes(content)
        if not content_type or not content_type.strip():
            content_type = detect_content_type_from_content(content) or DEFAULT_CONTENT_TYPE

        return cls(
            file_name=file_name,
            content_type=content_type,
            content=base64.b64encode(content).decode("ascii"),
            inline=inline,
        )

    @classmethod
    def from_base64_content(
        cls,
        file_name: str,
        content_b64: str,
        content_type: Optional[str] = None,
        inline: bool = False,
    ) -> "Attachment":
        """Build an attachment from base64 text.

        Raises:
            AttachmentError: If the text is not valid, non-empty base64 or
                the file name is blank
        """
        if not isinstance(content_b64, str):
            raise AttachmentError("content must be a non-empty base64 string")

        raw = _decode_base64(content_b64)

        if not file_name or not file_name.strip():
            raise AttachmentError("file_name is required")
        if not content_b64.strip():
            raise AttachmentError("content must be a non-empty base64 string")

        if not content_type or not content_type.strip():
            content_type = detect_content_type_from_content(raw) or DEFAULT_CONTENT_TYPE

        return cls(
            file_name=file_name,
            content_type=content_type,
            content=_strip_line_breaks(content_b64),
            inline=inline,
        )

    @classmethod
    def from_stream(
        cls,
        file_name: str,
        stream: BinaryIO,
        content_type: Optional[str] = None,
        inline: bool = False,
    ) -> "Attachment":
        """Build an attachment by reading a binary stream to the end.

        The stream is not closed.
        """
        if stream is None or not callable(getattr(stream, "read", None)):
            raise AttachmentError("stream must be a valid, readable binary stream")

        try:
            data = stream.read()
        except (OSError, ValueError) as e:
            raise AttachmentError("failed to read from stream", cause=e) from e

        if not isinstance(data, (bytes, bytearray)):
            raise AttachmentError("stream must be opened in binary mode")

        return cls.from_content(file_name, data, content_type, inline)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        inline: bool = False,
    ) -> "Attachment":
        """Build an attachment from a file on disk.

        The file name is the path's base name. Without an explicit content
        type, inference tries the extension table, then the system MIME
        registry, then content sniffing.

        Args:
            path: Path to a readable regular file
            content_type: Explicit content type
            inline: Whether the attachment is rendered inline

        Returns:
            A new Attachment

        Raises:
            AttachmentError: If the path is not a readable file
        """
        if path is None or not str(path).strip():
            raise AttachmentError("path must be a readable file")

        file_path = Path(path)
        if not file_path.is_file():
            raise AttachmentError(
                "path must be a readable file", context={"path": str(path)}
            )

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise AttachmentError(
                f"failed to read file: {path}", cause=e, context={"path": str(path)}
            ) from e

        if not content_type or not content_type.strip():
            content_type = (
                detect_content_type_from_path(file_path)
                or detect_content_type_from_content(data)
                or DEFAULT_CONTENT_TYPE
            )

        logger.debug(f"Loaded attachment {file_path.name} ({content_type}, {len(data)} bytes)")

        return cls(
            file_name=file_path.name,
            content_type=content_type,
            content=base64.b64encode(data).decode("ascii"),
            inline=inline,
        )

    def validate(self) -> None:
        """Check the attachment is complete enough to send.

        Raises:
            AttachmentError: On a blank file name, content or content type,
                or content that is not valid base64
        """
        if not self.file_name or not self.file_name.strip():
            raise AttachmentError("attachment.file_name is required")

        if not self.content or not self.content.strip():
            raise AttachmentError("attachment.content must be a non-empty base64 string")

        try:
            base64.b64decode(_strip_line_breaks(self.content), validate=True)
        except (binascii.Error, ValueError) as e:
            raise AttachmentError(
                f"attachment.content for {self.file_name} is not valid base64", cause=e
            ) from e

        if not self.content_type or not self.content_type.strip():
            raise AttachmentError("attachment.content_type is required")

    def to_dict(self) -> Dict[str, Union[str, bool]]:
        """Convert to the API representation."""
        content_type = self.content_type
        if not content_type or not content_type.strip():
            content_type = DEFAULT_CONTENT_TYPE

        return {
            "file_name": self.file_name,
            "content_type": content_type,
            "content": self.content,
            "inline": self.inline,
        }
