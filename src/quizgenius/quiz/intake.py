"""Lesson document intake: media-type and size checks plus base64 encoding.

Rejections are per file and never abort a batch; they come back as warning
strings next to the accepted uploads.
"""

from __future__ import annotations

import base64
import logging
import uuid
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from ..errors import FileRejected
from .models import UploadedFile

__all__ = [
    "ALLOWED_MEDIA_TYPES",
    "MAX_UPLOAD_BYTES",
    "PendingUploads",
    "guess_media_type",
    "read_upload",
]

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_SUFFIX_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}
ALLOWED_MEDIA_TYPES = frozenset(_SUFFIX_MEDIA_TYPES.values())


def guess_media_type(path: Path) -> str | None:
    return _SUFFIX_MEDIA_TYPES.get(path.suffix.lower().lstrip("."))


def _format_limit(max_bytes: int) -> str:
    mib = 1024 * 1024
    if max_bytes >= mib and max_bytes % mib == 0:
        return f"{max_bytes // mib}MB"
    return f"{max_bytes} bytes"


def read_upload(path: Path, *, max_bytes: int = MAX_UPLOAD_BYTES) -> UploadedFile:
    """Validate and encode a single file; raises :class:`FileRejected`."""

    name = path.name
    media_type = guess_media_type(path)
    if media_type not in ALLOWED_MEDIA_TYPES:
        raise FileRejected(name, "only PDF and JPEG/PNG/WebP images allowed")
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise FileRejected(name, f"cannot read file ({exc.strerror})") from exc
    if size > max_bytes:
        raise FileRejected(name, f"file is larger than {_format_limit(max_bytes)}")
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise FileRejected(name, f"cannot read file ({exc.strerror})") from exc
    return UploadedFile(
        id=uuid.uuid4().hex[:9],
        name=name,
        media_type=media_type,
        data=base64.b64encode(raw).decode("ascii"),
        size=size,
    )


class PendingUploads:
    """The set of accepted uploads waiting to be turned into a quiz."""

    def __init__(self, *, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
        self._files: List[UploadedFile] = []
        self._max_bytes = max_bytes

    @property
    def files(self) -> tuple[UploadedFile, ...]:
        return tuple(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def add_paths(self, paths: Sequence[Path]) -> List[str]:
        """Accept every valid file under ``paths`` and return warnings.

        Directories contribute their direct children in name order.
        """
        warnings: List[str] = []
        for path in _expand(paths):
            if not path.exists():
                warnings.append(f"Skipped {path.name}: file not found")
                continue
            try:
                upload = read_upload(path, max_bytes=self._max_bytes)
            except FileRejected as exc:
                logger.warning(
                    "Upload rejected",
                    extra={"event": "intake_rejected", "file": exc.name,
                           "reason": exc.reason},
                )
                warnings.append(str(exc))
                continue
            self._files.append(upload)
            logger.info(
                "Upload accepted",
                extra={"event": "intake_accepted", "file": upload.name,
                       "media_type": upload.media_type, "size": upload.size},
            )
        return warnings

    def remove(self, file_id: str) -> bool:
        before = len(self._files)
        self._files = [item for item in self._files if item.id != file_id]
        return len(self._files) != before

    def clear(self) -> None:
        self._files.clear()


def _expand(paths: Iterable[Path]) -> Iterator[Path]:
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            yield from sorted(
                (child for child in path.iterdir() if child.is_file()),
                key=lambda child: child.name.lower(),
            )
            continue
        yield path
