"""Mood image uploads: naming, bounded saving and removal."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from fastapi import UploadFile

LOGGER = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif"})
FALLBACK_EXTENSION = ".jpg"

_CHUNK_SIZE = 1024 * 1024
_NAME_ATTEMPTS = 5


class UploadError(ValueError):
    status_code = 400


class TooManyFilesError(UploadError):
    status_code = 400


class FileTooLargeError(UploadError):
    status_code = 413


@dataclass(frozen=True)
class SavedImage:
    filename: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "url": self.url}


def safe_ext(original_name: Optional[str]) -> str:
    suffix = Path(original_name or "").suffix.lower()
    return suffix if suffix in ALLOWED_EXTENSIONS else FALLBACK_EXTENSION


def mood_filename(original_name: Optional[str], now: Optional[datetime] = None) -> str:
    """``mood_<YYYYMMDDHHMMSS>_<1000-9999><ext>`` with the timestamp in UTC."""

    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"mood_{stamp}_{random.randint(1000, 9999)}{safe_ext(original_name)}"


def _is_plain_name(filename: str) -> bool:
    if not filename or filename in {".", ".."} or "\\" in filename:
        return False
    return Path(filename).name == filename


async def _save_one(upload: UploadFile, upload_dir: Path, max_file_size: int) -> Path:
    for _ in range(_NAME_ATTEMPTS):
        target = upload_dir / mood_filename(upload.filename)
        try:
            handle = target.open("xb")
        except FileExistsError:
            continue
        written = 0
        try:
            with handle:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_file_size:
                        raise FileTooLargeError(
                            f"File '{upload.filename}' exceeds {max_file_size} bytes."
                        )
                    handle.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        return target
    raise UploadError("Could not allocate a unique filename for the upload.")


async def save_mood_images(
    files: Sequence[UploadFile],
    upload_dir: Path,
    *,
    max_files: int,
    max_file_size: int,
    public_prefix: str = "/uploads",
) -> List[SavedImage]:
    """Write every upload under a generated name; all-or-nothing per request."""

    if len(files) > max_files:
        raise TooManyFilesError(f"Too many files: at most {max_files} per upload.")

    upload_dir.mkdir(parents=True, exist_ok=True)
    saved: List[Path] = []
    try:
        for upload in files:
            saved.append(await _save_one(upload, upload_dir, max_file_size))
    except BaseException:
        for path in saved:
            path.unlink(missing_ok=True)
        raise

    prefix = public_prefix.rstrip("/")
    if saved:
        LOGGER.info("Stored %d mood image(s) in %s", len(saved), upload_dir)
    return [SavedImage(filename=path.name, url=f"{prefix}/{path.name}") for path in saved]


def delete_mood_file(upload_dir: Path, filename: str) -> bool:
    """Remove ``filename`` from ``upload_dir``; a missing file is not an error.

    Names that are not a bare filename are never resolved against the disk.
    """

    if not _is_plain_name(filename):
        LOGGER.warning("Refusing to delete non-plain filename %r", filename)
        return False
    target = upload_dir / filename
    if not target.is_file():
        return False
    target.unlink(missing_ok=True)
    LOGGER.info("Deleted mood image %s", filename)
    return True
