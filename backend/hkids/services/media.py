"""Owned image files referenced by books.

A book stores every image as a string reference. Inline ``data:`` URIs sent
by the admin client are decoded and written under the media directory; the
persisted reference then becomes ``/uploads/<name>`` and the file belongs to
the book. Anything else (external URLs, paths to files we did not write) is
kept verbatim and never touched on cleanup.
"""

import base64
import binascii
import logging
import mimetypes
import re
import uuid
from collections.abc import Iterable
from pathlib import Path

from hkids.errors import ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"

_DATA_URI = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]*)*;base64,(?P<data>.*)$",
    re.DOTALL,
)
_SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]+$")


def _extension_for(mime: str) -> str:
    if mime == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime) or ".bin"


class MediaStore:
    def __init__(self, root: str | Path, max_bytes: int = 10 * 1024 * 1024):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def store(self, reference: str, field: str = "file") -> str:
        """Persist an inline data URI and return its reference.

        Non-inline references are returned unchanged.
        """
        if not reference.startswith("data:"):
            return reference

        match = _DATA_URI.match(reference)
        if not match:
            raise ValidationError(f"{field} is not a valid base64 data URI")
        mime = (match.group("mime") or "").lower()
        if not (mime.startswith("image/") or mime == "application/pdf"):
            raise ValidationError("Only image files and PDFs are allowed")
        try:
            payload = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(f"{field} is not a valid base64 data URI")
        if len(payload) > self.max_bytes:
            raise ValidationError(f"{field} exceeds the {self.max_bytes} byte upload limit")

        self.root.mkdir(parents=True, exist_ok=True)
        name = f"{field}-{uuid.uuid4().hex}{_extension_for(mime)}"
        (self.root / name).write_bytes(payload)
        logger.debug("Stored %s (%d bytes) as %s", field, len(payload), name)
        return URL_PREFIX + name

    def owned_path(self, reference: str) -> Path | None:
        if not reference or not reference.startswith(URL_PREFIX):
            return None
        name = reference[len(URL_PREFIX):]
        if not _SAFE_NAME.match(name) or name in (".", ".."):
            return None
        return self.root / name

    def remove(self, references: Iterable[str]) -> None:
        """Delete owned files. Failures are logged and never raised."""
        for reference in references:
            path = self.owned_path(reference)
            if path is None:
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                logger.info("Owned file already gone: %s", reference)
            except OSError:
                logger.warning("Could not delete owned file %s", reference, exc_info=True)
