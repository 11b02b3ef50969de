"""Generation of load identifiers stamped on every submitted record."""

from __future__ import annotations

import base64
import hashlib
from datetime import UTC, datetime
from typing import Final

FINGERPRINT_BYTES: Final[int] = 1024
_DATE_FORMAT: Final[str] = "%Y%m%d_%H%M%S"


def make_load_id(
    head: bytes,
    *,
    file_name: str | None = None,
    file_modified: datetime | None = None,
    now: datetime | None = None,
) -> str:
    """Build ``<key>_<file date>_<start time>``.

    The key is the file name when known, otherwise the base64 MD5 of the first KB of
    content. An unknown file date renders as ``?``.
    """

    key = file_name
    if not key:
        digest = hashlib.md5(head[:FINGERPRINT_BYTES], usedforsecurity=False).digest()
        key = base64.b64encode(digest).decode("ascii")
    file_date = file_modified.astimezone(UTC).strftime(_DATE_FORMAT) if file_modified else "?"
    started = (now or datetime.now(UTC)).astimezone(UTC).strftime(_DATE_FORMAT)
    return f"{key}_{file_date}_{started}"
