"""
Multipart file reception

Uploaded files are spooled into the temporary upload directory under
sanitized names and handed to the services as UploadedAsset blobs. The blobs
are deleted when the request finishes, whatever its outcome.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional
import re
import shutil
import time

from fastapi import UploadFile
import structlog

from mascote.core.errors import StorageError
from mascote.schemas.order import UploadedAsset

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+")


def safe_filename(filename: Optional[str]) -> str:
    """Original file name with anything but word chars, dots and dashes replaced"""
    cleaned = _UNSAFE_CHARS.sub("_", Path(filename or "").name)
    return cleaned or "upload"


class UploadSpool:
    """Collects received files for one request"""

    def __init__(self, uploads_dir: Path):
        self.uploads_dir = uploads_dir
        self._received: List[UploadedAsset] = []

    def receive(self, upload: Optional[UploadFile]) -> Optional[UploadedAsset]:
        if upload is None or not upload.filename:
            return None
        name = f"{int(time.time() * 1000)}_{len(self._received)}_{safe_filename(upload.filename)}"
        target = self.uploads_dir / name
        try:
            with target.open("wb") as handle:
                shutil.copyfileobj(upload.file, handle)
        except OSError as e:
            raise StorageError(f"Cannot receive upload: {e}") from e
        asset = UploadedAsset(filename=upload.filename, path=target)
        self._received.append(asset)
        return asset

    def receive_many(self, uploads: Optional[List[UploadFile]]) -> List[UploadedAsset]:
        received = [self.receive(upload) for upload in uploads or []]
        return [asset for asset in received if asset is not None]

    def cleanup(self) -> None:
        for asset in self._received:
            try:
                asset.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove temporary upload", path=str(asset.path), error=str(e))
        self._received = []


@contextmanager
def upload_spool(uploads_dir: Path) -> Iterator[UploadSpool]:
    spool = UploadSpool(uploads_dir)
    try:
        yield spool
    finally:
        spool.cleanup()
